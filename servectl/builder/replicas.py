from typing import Optional
from kubernetes import client
from servectl.api.common import AutoscalingConfig


def replicas_from_deployment(deployment: Optional[client.V1Deployment]) -> Optional[int]:
    """已部署Deployment的副本数，没有时返回None"""
    if deployment is None or deployment.spec is None:
        return None
    return deployment.spec.replicas


def reconcile_replicas(autoscaling: AutoscalingConfig, previous_replicas: Optional[int] = None) -> int:
    """（重新）部署时请求的副本数

    保留之前的正数副本数，避免重新部署抵消autoscaler的调整；配置的上下限始终优先。
    """
    requested = autoscaling.init_replicas

    if previous_replicas is not None and previous_replicas > 0:
        requested = previous_replicas

    if requested < autoscaling.min_replicas:
        requested = autoscaling.min_replicas

    if requested > autoscaling.max_replicas:
        requested = autoscaling.max_replicas

    return requested
