import pytest

from servectl.api.api_spec import APISpec
from servectl.api.cluster import ClusterContext
from servectl.api.common import PredictorConfig, ComputeRequest, AutoscalingConfig, ModelConfig


@pytest.fixture
def cluster():
    """编译测试共用的集群上下文"""
    return ClusterContext(
        cluster_name="test-cluster",
        bucket="test-bucket",
        image_downloader="registry.example.com/downloader:0.1",
        image_request_monitor="registry.example.com/request-monitor:0.1",
        image_neuron_rtd="registry.example.com/neuron-rtd:0.1"
    )


@pytest.fixture
def make_api():
    """APISpec工厂，关键字参数覆盖默认值"""
    def _make_api(predictor_type="python", cpu=None, mem=None, gpu=0, inf=0,
                  models=None, env=None, python_path=None, **autoscaling):
        if models is None:
            models = [ModelConfig(name="iris", model="s3://models/iris.zip")]
        return APISpec(
            name="iris-classifier",
            id="api-id-123",
            deployment_id="deploy-456",
            key="apis/iris-classifier/api-id-123/spec.json",
            project_key="projects/abc123.zip",
            endpoint="/iris-classifier",
            predictor=PredictorConfig(
                type=predictor_type,
                image="registry.example.com/predictor:0.1",
                tensorflow_serving_image="registry.example.com/tfs:0.1",
                models=models,
                python_path=python_path,
                env=env or {}
            ),
            compute=ComputeRequest(cpu=cpu, mem=mem, gpu=gpu, inf=inf),
            autoscaling=AutoscalingConfig(**autoscaling)
        )
    return _make_api


@pytest.fixture
def api_yaml_content():
    """完整的API配置"""
    return """
name: iris-classifier
id: api-id-123
deployment_id: deploy-456
key: apis/iris-classifier/api-id-123/spec.json
project_key: projects/abc123.zip
endpoint: /iris-classifier
predictor:
  type: tensorflow
  image: registry.example.com/predictor:0.1
  tensorflow_serving_image: registry.example.com/tfs:0.1
  model: s3://models/iris.zip
  env:
    LOG_LEVEL: debug
compute:
  cpu: 1
  mem: 2Gi
autoscaling:
  min_replicas: 1
  max_replicas: 5
  init_replicas: 2
  workers_per_replica: 2
update_strategy:
  max_surge: "1"
  max_unavailable: 25%
"""


@pytest.fixture
def cluster_yaml_content():
    return """
cluster_name: prod
bucket: prod-bucket
image_downloader: registry.example.com/downloader:1.0
"""
