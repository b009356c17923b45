from kubernetes import client
from servectl.constants import API_LIVENESS_FILE, API_LIVENESS_STALE_PERIOD, TF_BASE_SERVING_PORT


def _bash_probe(command: str, initial_delay_seconds: int, failure_threshold: int) -> client.V1Probe:
    return client.V1Probe(
        _exec=client.V1ExecAction(command=["/bin/bash", "-c", command]),
        initial_delay_seconds=initial_delay_seconds,
        timeout_seconds=5,
        period_seconds=5,
        success_threshold=1,
        failure_threshold=failure_threshold
    )


def file_exists_probe(file_name: str) -> client.V1Probe:
    """`file_name` 作为普通文件存在后通过"""
    return _bash_probe(f"test -f {file_name}", initial_delay_seconds=3, failure_threshold=1)


def socket_exists_probe(socket_name: str) -> client.V1Probe:
    """`socket_name` 作为unix socket存在后通过"""
    return _bash_probe(f"test -S {socket_name}", initial_delay_seconds=3, failure_threshold=1)


def api_liveness_probe(liveness_file: str = API_LIVENESS_FILE,
                       stale_period: int = API_LIVENESS_STALE_PERIOD) -> client.V1Probe:
    """`liveness_file` 中的心跳时间戳超过 `stale_period` 秒未更新时失败。

    api容器健康时会不断把当前unix时间写入该文件。
    """
    command = (
        f'now="$(date +%s)" && min="$(($now-{stale_period}))" && '
        f'test "$(cat {liveness_file} | tr -d \'[:space:]\')" -ge "$min"'
    )
    return _bash_probe(command, initial_delay_seconds=5, failure_threshold=3)


def serving_ports_probe(num_ports: int, base_port: int = TF_BASE_SERVING_PORT) -> client.V1Probe:
    """serving sidecar的就绪检查。

    只有一个端口时使用TCP检查；有多个端口（每个worker一个）时，
    范围内的所有端口都能连接才算就绪。
    """
    probe = client.V1Probe(
        initial_delay_seconds=5,
        timeout_seconds=5,
        period_seconds=5,
        success_threshold=1,
        failure_threshold=2
    )
    if num_ports <= 1:
        probe.tcp_socket = client.V1TCPSocketAction(port=base_port)
    else:
        last_port = base_port + num_ports - 1
        probe._exec = client.V1ExecAction(command=[
            "/bin/bash", "-c",
            f"test $(nc -zv localhost {base_port}-{last_port} 2>&1 | wc -l) -eq {num_ports}"
        ])
    return probe
