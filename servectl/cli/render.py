import logging
import yaml
from kubernetes import client
from servectl.api.cluster import ClusterContext
from servectl.builder.download import decode_download_args
from servectl.builder.workload_builder import compile_api
from servectl.errors import CompileError
from servectl.parser.base_parser import BaseParser, ParserError

logger = logging.getLogger(__name__)


def _previous_deployment(replicas):
    """只知道副本数时，用来代替线上Deployment的对象"""
    if replicas is None:
        return None
    return client.V1Deployment(spec=client.V1DeploymentSpec(
        replicas=replicas,
        selector=client.V1LabelSelector(),
        template=client.V1PodTemplateSpec()
    ))


def render_command(args):
    """处理render命令"""
    try:
        api = BaseParser.parse_yaml_file(args.file)
        if args.cluster_config:
            cluster = BaseParser.parse_cluster_config_file(args.cluster_config)
        else:
            cluster = ClusterContext()

        compiled = compile_api(api, cluster, _previous_deployment(args.previous_replicas))
        api_client = client.ApiClient()
        documents = [
            api_client.sanitize_for_serialization(compiled.deployment),
            api_client.sanitize_for_serialization(compiled.service),
            compiled.virtual_service,
        ]
        print(yaml.safe_dump_all(documents, sort_keys=False), end="")
        logger.info(f"Rendered API {api.name} ({api.predictor.type.value})")
        return 0

    except ParserError as e:
        print(f"❌ Parser error: {e}")
        return 1
    except CompileError as e:
        print(f"❌ Compile error: {e}")
        return 1


def decode_download_command(args):
    """处理decode-download命令"""
    try:
        manifest = decode_download_args(args.encoded)
    except CompileError as e:
        print(f"❌ {e}")
        return 1

    print(yaml.safe_dump(manifest.model_dump(by_alias=True), sort_keys=False), end="")
    return 0
