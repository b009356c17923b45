"""把APISpec编译成提交到集群的对象。

`compile_api` 是入口，它是纯函数：读取API配置、集群上下文和之前部署的Deployment，
返回新对象，不访问网络。任何失败都抛出CompileError且不返回任何对象，
不会产生只构建了一半的工作负载。
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from kubernetes import client

from servectl.api.api_spec import APISpec
from servectl.api.cluster import ClusterContext
from servectl.constants import (
    Labels, DEFAULT_PORT, DOWNLOADER_CONTAINER_NAME, ISTIO_EXCLUDE_OUTBOUND_ANNOTATION, APIS_GATEWAY,
    PREDICT_REWRITE_PATH, SERVICE_ACCOUNT_NAME, k8s_name,
)
from .base_builder import BaseBuilder, PodTopology
from .download import download_args
from .replicas import reconcile_replicas, replicas_from_deployment
from .topology import build_topology

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledAPI:
    """单个API的期望状态"""

    deployment: client.V1Deployment
    service: client.V1Service
    virtual_service: Dict[str, Any]


def canonicalize_endpoint(path: str) -> str:
    return "/" + path.strip().strip("/")


def _int_or_percent(value: Union[int, str]) -> Union[int, str]:
    """IntOrString：纯数字按整数发送，百分比按字符串发送"""
    if isinstance(value, int):
        return value
    return int(value) if value.isdigit() else value


class WorkloadBuilder(BaseBuilder):
    """API的Deployment、Service和VirtualService构建器"""

    @staticmethod
    def api_labels(api: APISpec) -> Dict[str, str]:
        return {
            Labels.API_NAME: api.name,
            Labels.API_ID: api.id,
            Labels.DEPLOYMENT_ID: api.deployment_id,
        }

    @classmethod
    def build_downloader_container(cls, api: APISpec, cluster: ClusterContext) -> client.V1Container:
        return client.V1Container(
            name=DOWNLOADER_CONTAINER_NAME,
            image=cluster.image_downloader,
            image_pull_policy="Always",
            args=[download_args(api, cluster)],
            env_from=cls.base_env_from(),
            volume_mounts=cls.default_volume_mounts()
        )

    @classmethod
    def build_pod_template_spec(cls, api: APISpec, cluster: ClusterContext,
                                topology: PodTopology) -> client.V1PodTemplateSpec:
        spec = client.V1PodSpec(
            restart_policy="Always",
            init_containers=[cls.build_downloader_container(api, cluster)],
            containers=topology.containers,
            node_selector={Labels.WORKLOAD: "true"},
            tolerations=cls.tolerations(),
            volumes=topology.volumes,
            service_account_name=SERVICE_ACCOUNT_NAME
        )
        metadata = client.V1ObjectMeta(
            labels=cls.api_labels(api),
            annotations={ISTIO_EXCLUDE_OUTBOUND_ANNOTATION: "0.0.0.0/0"}
        )
        return client.V1PodTemplateSpec(metadata=metadata, spec=spec)

    @classmethod
    def build_deployment(cls, api: APISpec, cluster: ClusterContext,
                         prev_deployment: Optional[client.V1Deployment] = None) -> client.V1Deployment:
        """构建K8s Deployment"""
        topology = build_topology(api, cluster)
        replicas = reconcile_replicas(api.autoscaling, replicas_from_deployment(prev_deployment))
        logger.debug(f"API {api.name}: requesting {replicas} replicas")

        # 构建Deployment规格
        deployment_spec = client.V1DeploymentSpec(
            replicas=replicas,
            selector=client.V1LabelSelector(match_labels={Labels.API_NAME: api.name}),
            template=cls.build_pod_template_spec(api, cluster, topology),
            strategy=client.V1DeploymentStrategy(
                type="RollingUpdate",
                rolling_update=client.V1RollingUpdateDeployment(
                    max_surge=_int_or_percent(api.update_strategy.max_surge),
                    max_unavailable=_int_or_percent(api.update_strategy.max_unavailable)
                )
            )
        )

        # 构建Deployment元数据
        metadata = client.V1ObjectMeta(
            name=k8s_name(api.name),
            labels=cls.api_labels(api),
            annotations=api.to_k8s_annotations()
        )

        return client.V1Deployment(
            api_version="apps/v1",
            kind="Deployment",
            metadata=metadata,
            spec=deployment_spec
        )

    @classmethod
    def build_service(cls, api: APISpec) -> client.V1Service:
        """构建K8s Service"""
        service_spec = client.V1ServiceSpec(
            selector={Labels.API_NAME: api.name},
            ports=[client.V1ServicePort(
                name="http",
                port=DEFAULT_PORT,
                target_port=DEFAULT_PORT
            )],
            type="ClusterIP"
        )

        metadata = client.V1ObjectMeta(
            name=k8s_name(api.name),
            labels={Labels.API_NAME: api.name},
            annotations=api.to_k8s_annotations()
        )

        return client.V1Service(
            api_version="v1",
            kind="Service",
            metadata=metadata,
            spec=service_spec
        )

    @classmethod
    def build_virtual_service(cls, api: APISpec) -> Dict[str, Any]:
        """构建从API网关到Service的Istio路由

        kubernetes客户端没有Istio资源的模型，这里直接返回自定义对象的字典。
        """
        name = k8s_name(api.name)
        return {
            "apiVersion": "networking.istio.io/v1alpha3",
            "kind": "VirtualService",
            "metadata": {
                "name": name,
                "labels": {Labels.API_NAME: api.name},
                "annotations": api.to_k8s_annotations(),
            },
            "spec": {
                "hosts": ["*"],
                "gateways": [APIS_GATEWAY],
                "http": [{
                    "match": [{"uri": {"exact": canonicalize_endpoint(api.endpoint)}}],
                    "rewrite": {"uri": canonicalize_endpoint(PREDICT_REWRITE_PATH)},
                    "route": [{
                        "destination": {
                            "host": name,
                            "port": {"number": DEFAULT_PORT},
                        },
                    }],
                }],
            },
        }


def compile_api(api: APISpec, cluster: ClusterContext,
                prev_deployment: Optional[client.V1Deployment] = None) -> CompiledAPI:
    """把 `api` 编译成Deployment、Service和VirtualService"""
    deployment = WorkloadBuilder.build_deployment(api, cluster, prev_deployment)
    return CompiledAPI(
        deployment=deployment,
        service=WorkloadBuilder.build_service(api),
        virtual_service=WorkloadBuilder.build_virtual_service(api),
    )
