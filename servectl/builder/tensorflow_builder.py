import logging
from kubernetes import client
from .base_builder import BaseBuilder, PodTopology
from .env import build_env_vars
from .probes import serving_ports_probe
from servectl.api.api_spec import APISpec
from servectl.api.cluster import ClusterContext
from servectl.constants import (
    HardwareMode, ResourceName, TF_SERVING_CONTAINER_NAME, TF_BASE_SERVING_PORT, TF_SERVING_EMPTY_MODEL_CONFIG,
)

logger = logging.getLogger(__name__)


class TensorFlowBuilder(BaseBuilder):
    """TensorFlow predictor：api容器 + TF Serving sidecar"""

    @classmethod
    def build_topology(cls, api: APISpec, cluster: ClusterContext) -> PodTopology:
        api_requests = {}
        serve_requests = {}
        serve_limits = {}
        topology = PodTopology(volumes=cls.pod_volumes(api))

        if api.compute.hardware_mode == HardwareMode.INF:
            neuron_container = cls.build_neuron_rtd_container(api, cluster)
            cls.assign_compute(api, [api_requests, serve_requests, neuron_container.resources.requests])
            topology.containers.append(neuron_container)
        else:
            cls.assign_compute(api, [api_requests, serve_requests])
            if api.compute.gpu > 0:
                cls.assign_extended_resource(ResourceName.GPU, api.compute.gpu, serve_requests, serve_limits)

        # 构建容器
        topology.containers.extend([
            cls.build_api_container(
                api, cluster, cls.serving_volume_mounts(api), cls.resource_requirements(api_requests)
            ),
            cls.build_tf_serving_container(
                api, cluster, cls.resource_requirements(serve_requests, serve_limits)
            ),
            cls.build_request_monitor_container(api, cluster),
        ])
        logger.debug(f"TensorFlow topology for {api.name}: {topology.container_names()}")
        return topology

    @classmethod
    def build_tf_serving_container(cls, api: APISpec, cluster: ClusterContext,
                                   resources: client.V1ResourceRequirements) -> client.V1Container:
        """构建TF Serving sidecar

        使用Inferentia时每个worker运行一个server，端口从基础serving端口开始递增，
        由镜像入口启动；否则只在基础端口上启动一个server。
        """
        num_ports = 1
        args = None
        if api.compute.inf > 0:
            num_ports = api.autoscaling.workers_per_replica
        else:
            args = [
                f"--port={TF_BASE_SERVING_PORT}",
                f"--model_config_file={TF_SERVING_EMPTY_MODEL_CONFIG}",
            ]

        return client.V1Container(
            name=TF_SERVING_CONTAINER_NAME,
            image=api.predictor.tensorflow_serving_image,
            image_pull_policy="Always",
            args=args,
            env=build_env_vars(api, TF_SERVING_CONTAINER_NAME, cluster),
            env_from=cls.base_env_from(),
            volume_mounts=cls.serving_volume_mounts(api),
            readiness_probe=serving_ports_probe(num_ports),
            resources=resources,
            ports=[client.V1ContainerPort(container_port=TF_BASE_SERVING_PORT + i) for i in range(num_ports)]
        )
