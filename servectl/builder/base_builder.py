from dataclasses import dataclass, field
from typing import Dict, List, Optional

from kubernetes import client

from servectl.api.api_spec import APISpec
from servectl.api.cluster import ClusterContext
from servectl.builder.env import build_env_vars
from servectl.builder.probes import file_exists_probe, socket_exists_probe, api_liveness_probe
from servectl.builder.resources import split_quantity
from servectl.constants import (
    API_CONTAINER_NAME, NEURON_RTD_CONTAINER_NAME, REQUEST_MONITOR_CONTAINER_NAME, DEFAULT_PORT,
    EMPTY_DIR_VOLUME_NAME, EMPTY_DIR_MOUNT_PATH, NEURON_SOCK_VOLUME_NAME, NEURON_SOCK_MOUNT_PATH,
    NEURON_RTD_SOCKET, API_READINESS_FILE, REQUEST_MONITOR_READINESS_FILE, REQUEST_MONITOR_CPU_REQUEST,
    REQUEST_MONITOR_MEM_REQUEST, HUGE_PAGES_MEM_PER_INF, ENV_VARS_CONFIG_MAP, AWS_CREDENTIALS_SECRET,
    TOLERATION_KEYS, ResourceName,
)

ResourceList = Dict[str, str]


@dataclass
class PodTopology:
    """单个副本的容器（按Pod中的顺序）及其挂载的卷"""

    containers: List[client.V1Container] = field(default_factory=list)
    volumes: List[client.V1Volume] = field(default_factory=list)

    def container_names(self) -> List[str]:
        return [container.name for container in self.containers]


class BaseBuilder:
    """各predictor运行时共用的容器和Pod模板构建器

    每个方法都返回新对象，模块级别不缓存任何对象，调用方可以随意修改返回值。
    """

    @staticmethod
    def default_volumes() -> List[client.V1Volume]:
        return [client.V1Volume(name=EMPTY_DIR_VOLUME_NAME, empty_dir=client.V1EmptyDirVolumeSource())]

    @staticmethod
    def default_volume_mounts() -> List[client.V1VolumeMount]:
        return [client.V1VolumeMount(name=EMPTY_DIR_VOLUME_NAME, mount_path=EMPTY_DIR_MOUNT_PATH)]

    @staticmethod
    def neuron_sock_volume() -> client.V1Volume:
        return client.V1Volume(name=NEURON_SOCK_VOLUME_NAME, empty_dir=client.V1EmptyDirVolumeSource())

    @staticmethod
    def neuron_sock_volume_mounts() -> List[client.V1VolumeMount]:
        return [client.V1VolumeMount(name=NEURON_SOCK_VOLUME_NAME, mount_path=NEURON_SOCK_MOUNT_PATH)]

    @classmethod
    def serving_volume_mounts(cls, api: APISpec) -> List[client.V1VolumeMount]:
        """提供预测服务的容器的VolumeMounts"""
        volume_mounts = cls.default_volume_mounts()
        if api.compute.inf > 0:
            volume_mounts.extend(cls.neuron_sock_volume_mounts())
        return volume_mounts

    @classmethod
    def pod_volumes(cls, api: APISpec) -> List[client.V1Volume]:
        volumes = cls.default_volumes()
        if api.compute.inf > 0:
            volumes.append(cls.neuron_sock_volume())
        return volumes

    @staticmethod
    def base_env_from() -> List[client.V1EnvFromSource]:
        return [
            client.V1EnvFromSource(config_map_ref=client.V1ConfigMapEnvSource(name=ENV_VARS_CONFIG_MAP)),
            client.V1EnvFromSource(secret_ref=client.V1SecretEnvSource(name=AWS_CREDENTIALS_SECRET)),
        ]

    @staticmethod
    def tolerations() -> List[client.V1Toleration]:
        return [
            client.V1Toleration(key=key, operator="Equal", value="true", effect="NoSchedule")
            for key in TOLERATION_KEYS
        ]

    @staticmethod
    def assign_compute(api: APISpec, resource_lists: List[ResourceList]) -> None:
        """把cpu和内存请求分配到 `resource_lists`，第一个列表优先

        分配前先扣除request monitor的基线资源，用户未设置的请求不写入任何列表。
        """
        parts = len(resource_lists)
        for name, total, reserved in (
            (ResourceName.CPU, api.compute.cpu, REQUEST_MONITOR_CPU_REQUEST),
            (ResourceName.MEMORY, api.compute.mem, REQUEST_MONITOR_MEM_REQUEST),
        ):
            shares = split_quantity(total, reserved, parts)
            if shares is None:
                continue
            for resource_list, share in zip(resource_lists, shares):
                resource_list[name] = share

    @staticmethod
    def assign_extended_resource(name: str, count: int, requests: ResourceList, limits: ResourceList) -> None:
        # 扩展资源不能超分：request == limit
        requests[name] = str(count)
        limits[name] = str(count)

    @staticmethod
    def resource_requirements(requests: ResourceList, limits: Optional[ResourceList] = None) -> client.V1ResourceRequirements:
        return client.V1ResourceRequirements(requests=requests or None, limits=limits or None)

    @classmethod
    def build_api_container(cls, api: APISpec, cluster: ClusterContext,
                            volume_mounts: List[client.V1VolumeMount],
                            resources: client.V1ResourceRequirements) -> client.V1Container:
        """构建api容器"""
        return client.V1Container(
            name=API_CONTAINER_NAME,
            image=api.predictor.image,
            image_pull_policy="Always",
            env=build_env_vars(api, API_CONTAINER_NAME, cluster),
            env_from=cls.base_env_from(),
            volume_mounts=volume_mounts,
            readiness_probe=file_exists_probe(API_READINESS_FILE),
            liveness_probe=api_liveness_probe(),
            resources=resources,
            ports=[client.V1ContainerPort(container_port=DEFAULT_PORT)],
            security_context=client.V1SecurityContext(privileged=True)
        )

    @classmethod
    def build_request_monitor_container(cls, api: APISpec, cluster: ClusterContext) -> client.V1Container:
        return client.V1Container(
            name=REQUEST_MONITOR_CONTAINER_NAME,
            image=cluster.image_request_monitor,
            image_pull_policy="Always",
            args=[api.name, cluster.cluster_name],
            env_from=cls.base_env_from(),
            volume_mounts=cls.default_volume_mounts(),
            readiness_probe=file_exists_probe(REQUEST_MONITOR_READINESS_FILE),
            resources=client.V1ResourceRequirements(requests={
                ResourceName.CPU: REQUEST_MONITOR_CPU_REQUEST,
                ResourceName.MEMORY: REQUEST_MONITOR_MEM_REQUEST,
            })
        )

    @classmethod
    def build_neuron_rtd_container(cls, api: APISpec, cluster: ClusterContext) -> client.V1Container:
        """Inferentia runtime daemon容器，占用芯片及其所需的hugepages

        cpu和内存份额由调用方填入。
        """
        total_huge_pages = str(api.compute.inf * HUGE_PAGES_MEM_PER_INF)
        inf = str(api.compute.inf)
        return client.V1Container(
            name=NEURON_RTD_CONTAINER_NAME,
            image=cluster.image_neuron_rtd,
            image_pull_policy="Always",
            security_context=client.V1SecurityContext(
                capabilities=client.V1Capabilities(add=["SYS_ADMIN", "IPC_LOCK"])
            ),
            volume_mounts=cls.neuron_sock_volume_mounts(),
            readiness_probe=socket_exists_probe(NEURON_RTD_SOCKET),
            resources=client.V1ResourceRequirements(
                requests={ResourceName.HUGE_PAGES: total_huge_pages, ResourceName.INF: inf},
                limits={ResourceName.HUGE_PAGES: total_huge_pages, ResourceName.INF: inf}
            )
        )
