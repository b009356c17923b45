import logging
from .base_builder import BaseBuilder, PodTopology
from servectl.api.api_spec import APISpec
from servectl.api.cluster import ClusterContext
from servectl.constants import HardwareMode, ResourceName

logger = logging.getLogger(__name__)


class PythonBuilder(BaseBuilder):
    """Python predictor：模型直接运行在api容器中"""

    @classmethod
    def build_topology(cls, api: APISpec, cluster: ClusterContext) -> PodTopology:
        api_requests = {}
        api_limits = {}
        topology = PodTopology(volumes=cls.pod_volumes(api))

        if api.compute.hardware_mode == HardwareMode.INF:
            neuron_container = cls.build_neuron_rtd_container(api, cluster)
            cls.assign_compute(api, [api_requests, neuron_container.resources.requests])
            topology.containers.append(neuron_container)
        else:
            cls.assign_compute(api, [api_requests])
            if api.compute.gpu > 0:
                cls.assign_extended_resource(ResourceName.GPU, api.compute.gpu, api_requests, api_limits)

        # 构建容器
        topology.containers.extend([
            cls.build_api_container(
                api, cluster, cls.serving_volume_mounts(api), cls.resource_requirements(api_requests, api_limits)
            ),
            cls.build_request_monitor_container(api, cluster),
        ])
        logger.debug(f"Python topology for {api.name}: {topology.container_names()}")
        return topology
