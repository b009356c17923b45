import pytest

from servectl.api.common import ModelConfig
from servectl.builder.env import build_env_vars, max_worker_concurrency, neuron_core_group_size


def env_dict(env_vars):
    return {env_var.name: env_var.value for env_var in env_vars}


def env_names(env_vars):
    return [env_var.name for env_var in env_vars]


class TestDerivedValues:
    """测试 根据autoscaling和compute配置计算的值"""

    @pytest.mark.parametrize("max_replica_concurrency,workers,expected", [
        (100, 3, 34),
        (1024, 1, 1025),
        (5, 2, 4),
        (7, 2, 5),
        (1, 4, 1),
    ])
    def test_max_worker_concurrency(self, max_replica_concurrency, workers, expected):
        assert max_worker_concurrency(max_replica_concurrency, workers) == expected

    def test_neuron_core_group_size(self):
        assert neuron_core_group_size(1, 2) == 2
        assert neuron_core_group_size(2, 3) == 2
        assert neuron_core_group_size(4, 1) == 16


class TestApiContainerEnv:
    """测试 api容器的环境变量"""

    def test_user_env_comes_first(self, make_api, cluster):
        api = make_api("python", env={"B_VAR": "2", "A_VAR": "1"})
        env_vars = build_env_vars(api, "api", cluster)
        assert env_names(env_vars)[:3] == ["B_VAR", "A_VAR", "CORTEX_PROVIDER"]

    def test_reserved_name_shadows_user_value(self, make_api, cluster):
        api = make_api("python", env={"CORTEX_PROVIDER": "mine"})
        env_vars = build_env_vars(api, "api", cluster)
        provider_values = [e.value for e in env_vars if e.name == "CORTEX_PROVIDER"]
        assert provider_values == ["mine", "aws"]

    def test_host_ip_comes_from_node_status(self, make_api, cluster):
        env_vars = build_env_vars(make_api("python"), "api", cluster)
        host_ip = next(e for e in env_vars if e.name == "HOST_IP")
        assert host_ip.value is None
        assert host_ip.value_from.field_ref.field_path == "status.hostIP"

    def test_api_values(self, make_api, cluster):
        api = make_api("python", workers_per_replica=3, threads_per_worker=2, max_replica_concurrency=100,
                       python_path="src")
        env = env_dict(build_env_vars(api, "api", cluster))
        assert env["CORTEX_WORKERS_PER_REPLICA"] == "3"
        assert env["CORTEX_THREADS_PER_WORKER"] == "2"
        assert env["CORTEX_MAX_REPLICA_CONCURRENCY"] == "100"
        assert env["CORTEX_MAX_WORKER_CONCURRENCY"] == "34"
        assert env["CORTEX_SO_MAX_CONN"] == "200"
        assert env["CORTEX_SERVING_PORT"] == "8888"
        assert env["CORTEX_API_SPEC"] == "s3://test-bucket/apis/iris-classifier/api-id-123/spec.json"
        assert env["CORTEX_CACHE_DIR"] == "/mnt/spec"
        assert env["CORTEX_PROJECT_DIR"] == "/mnt/project"
        assert env["PYTHON_PATH"] == "/mnt/project/src"

    def test_absolute_python_path_stays_under_project(self, make_api, cluster):
        env = env_dict(build_env_vars(make_api("python", python_path="/src/lib"), "api", cluster))
        assert env["PYTHON_PATH"] == "/mnt/project/src/lib"

    def test_python_path_omitted_when_unset(self, make_api, cluster):
        env = env_dict(build_env_vars(make_api("python"), "api", cluster))
        assert "PYTHON_PATH" not in env

    @pytest.mark.parametrize("predictor_type", ["tensorflow", "python"])
    def test_named_model_runtimes_get_model_vars(self, make_api, cluster, predictor_type):
        models = [ModelConfig(name="a", model="s3://m/a"), ModelConfig(name="b", model="s3://m/b")]
        env = env_dict(build_env_vars(make_api(predictor_type, models=models), "api", cluster))
        assert env["CORTEX_MODEL_DIR"] == "/mnt/model"
        assert env["CORTEX_MODELS"] == "a,b"

    def test_onnx_has_no_model_vars(self, make_api, cluster):
        env = env_dict(build_env_vars(make_api("onnx"), "api", cluster))
        assert "CORTEX_MODEL_DIR" not in env
        assert "CORTEX_MODELS" not in env

    def test_tensorflow_serving_address(self, make_api, cluster):
        env = env_dict(build_env_vars(make_api("tensorflow"), "api", cluster))
        assert env["CORTEX_TF_BASE_SERVING_PORT"] == "9000"
        assert env["CORTEX_TF_SERVING_HOST"] == "localhost"

    def test_deterministic(self, make_api, cluster):
        api = make_api("tensorflow", inf=1, workers_per_replica=2, env={"X": "1", "Y": "2"})
        first = build_env_vars(api, "api", cluster)
        second = build_env_vars(api, "api", cluster)
        assert first == second


class TestSidecarEnv:
    """测试 sidecar只有provider标记和硬件相关的变量"""

    def test_serve_without_inf(self, make_api, cluster):
        env_vars = build_env_vars(make_api("tensorflow", env={"U": "v"}), "serve", cluster)
        assert env_names(env_vars) == ["U", "CORTEX_PROVIDER"]

    def test_tensorflow_inf_serve(self, make_api, cluster):
        api = make_api("tensorflow", inf=1, workers_per_replica=2)
        env = env_dict(build_env_vars(api, "serve", cluster))
        assert env["NEURONCORE_GROUP_SIZES"] == "2"
        assert env["NEURON_RTD_ADDRESS"] == "unix:/sock/neuron.sock"
        assert env["TF_WORKERS"] == "2"
        assert env["CORTEX_TF_BASE_SERVING_PORT"] == "9000"
        assert env["CORTEX_MODEL_DIR"] == "/mnt/model"
        assert env["TF_EMPTY_MODEL_CONFIG"] == "/etc/tfs/model_config_server.conf"
        assert "HOST_IP" not in env

    def test_tensorflow_inf_api(self, make_api, cluster):
        api = make_api("tensorflow", inf=1, workers_per_replica=2)
        env = env_dict(build_env_vars(api, "api", cluster))
        assert env["CORTEX_MULTIPLE_TF_SERVERS"] == "yes"
        assert env["CORTEX_ACTIVE_NEURON"] == "yes"
        assert "NEURONCORE_GROUP_SIZES" not in env
        assert "TF_WORKERS" not in env

    def test_python_inf_api(self, make_api, cluster):
        api = make_api("python", inf=2, workers_per_replica=4)
        env = env_dict(build_env_vars(api, "api", cluster))
        assert env["NEURONCORE_GROUP_SIZES"] == "2"
        assert env["NEURON_RTD_ADDRESS"] == "unix:/sock/neuron.sock"
        assert "CORTEX_ACTIVE_NEURON" not in env

    def test_onnx_ignores_inf(self, make_api, cluster):
        env = env_dict(build_env_vars(make_api("onnx", inf=1), "api", cluster))
        assert "NEURONCORE_GROUP_SIZES" not in env

    def test_neuron_rtd_gets_no_hardware_vars(self, make_api, cluster):
        env_vars = build_env_vars(make_api("python", inf=1), "neuron-rtd", cluster)
        assert env_names(env_vars) == ["CORTEX_PROVIDER"]
