from typing import Dict, Type, Union

from servectl.api.api_spec import APISpec
from servectl.api.cluster import ClusterContext
from servectl.constants import PredictorType
from servectl.errors import UnsupportedRuntime, CompileError
from .base_builder import BaseBuilder, PodTopology
from .onnx_builder import ONNXBuilder
from .python_builder import PythonBuilder
from .tensorflow_builder import TensorFlowBuilder


TOPOLOGY_BUILDERS: Dict[PredictorType, Type[BaseBuilder]] = {
    PredictorType.TENSORFLOW: TensorFlowBuilder,
    PredictorType.ONNX: ONNXBuilder,
    PredictorType.PYTHON: PythonBuilder,
}


def resolve_predictor_type(predictor_type: Union[PredictorType, str]) -> PredictorType:
    try:
        resolved = PredictorType(predictor_type)
    except ValueError:
        raise UnsupportedRuntime(predictor_type)
    if resolved not in TOPOLOGY_BUILDERS:
        raise UnsupportedRuntime(predictor_type)
    return resolved


def build_topology(api: APISpec, cluster: ClusterContext) -> PodTopology:
    """`api` 单个副本的容器和卷"""
    builder = TOPOLOGY_BUILDERS[resolve_predictor_type(api.predictor.type)]
    topology = builder.build_topology(api, cluster)

    names = topology.container_names()
    if len(names) != len(set(names)):
        raise CompileError(f"Duplicate container names in {api.name}: {names}")
    return topology
