import logging
from .base_builder import BaseBuilder, PodTopology
from servectl.api.api_spec import APISpec
from servectl.api.cluster import ClusterContext
from servectl.constants import ResourceName

logger = logging.getLogger(__name__)


class ONNXBuilder(BaseBuilder):
    """ONNX predictor：无论何种硬件都只有一个api容器"""

    @classmethod
    def build_topology(cls, api: APISpec, cluster: ClusterContext) -> PodTopology:
        requests = {}
        limits = {}

        if api.compute.inf > 0:
            logger.warning(f"API {api.name}: the onnx runtime does not use Inferentia, ignoring inf={api.compute.inf}")

        cls.assign_compute(api, [requests])
        if api.compute.gpu > 0:
            cls.assign_extended_resource(ResourceName.GPU, api.compute.gpu, requests, limits)

        topology = PodTopology(
            containers=[
                cls.build_api_container(
                    api, cluster, cls.default_volume_mounts(), cls.resource_requirements(requests, limits)
                ),
                cls.build_request_monitor_container(api, cluster),
            ],
            volumes=cls.default_volumes()
        )
        logger.debug(f"ONNX topology for {api.name}: {topology.container_names()}")
        return topology
