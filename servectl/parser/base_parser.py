import yaml
from typing import Any, Dict
from pydantic import ValidationError
from servectl.api.api_spec import APISpec
from servectl.api.cluster import ClusterContext
from servectl.constants import PredictorType, PREDICTOR_TYPES
from servectl.errors import UnsupportedRuntime


class ParserError(Exception):
    """Parser error exception"""
    pass


class BaseParser:
    """Parses API spec and cluster config YAML into validated models"""

    @staticmethod
    def load_yaml(yaml_content: str) -> Dict[str, Any]:
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ParserError(f"YAML parsing error: {e}")
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ParserError("Invalid YAML: expected a mapping at the top level")
        return data

    @staticmethod
    def read_file(file_path: str) -> str:
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return f.read()
        except FileNotFoundError:
            raise ParserError(f"File not found: {file_path}")
        except IOError as e:
            raise ParserError(f"File reading error: {e}")

    @classmethod
    def check_predictor_type(cls, data: Dict[str, Any]) -> None:
        predictor = data.get('predictor')
        if not isinstance(predictor, dict) or 'type' not in predictor:
            raise ParserError("Invalid API spec: missing 'predictor.type' field")
        if predictor['type'] not in PREDICTOR_TYPES:
            raise UnsupportedRuntime(predictor['type'])

    @classmethod
    def validate_api(cls, api: APISpec) -> None:
        """Cross-field checks pydantic does not express"""
        autoscaling = api.autoscaling
        if not autoscaling.min_replicas <= autoscaling.init_replicas <= autoscaling.max_replicas:
            raise ParserError(
                f"Invalid autoscaling: need min_replicas ({autoscaling.min_replicas}) <= "
                f"init_replicas ({autoscaling.init_replicas}) <= max_replicas ({autoscaling.max_replicas})"
            )

        if api.compute.gpu > 0 and api.compute.inf > 0:
            raise ParserError("Invalid compute: gpu and inf cannot both be requested")

        if api.predictor.type == PredictorType.TENSORFLOW and not api.predictor.tensorflow_serving_image:
            raise ParserError("tensorflow predictors require 'tensorflow_serving_image'")

    @classmethod
    def parse_yaml(cls, yaml_content: str) -> APISpec:
        """Parse API spec YAML content"""
        data = cls.load_yaml(yaml_content)
        cls.check_predictor_type(data)
        try:
            api = APISpec(**data)
        except ValidationError as e:
            raise ParserError(f"Validation error: {e}")
        cls.validate_api(api)
        return api

    @classmethod
    def parse_yaml_file(cls, file_path: str) -> APISpec:
        """Parse API spec YAML from file"""
        return cls.parse_yaml(cls.read_file(file_path))

    @classmethod
    def parse_cluster_config(cls, yaml_content: str) -> ClusterContext:
        data = cls.load_yaml(yaml_content)
        try:
            return ClusterContext(**data)
        except ValidationError as e:
            raise ParserError(f"Validation error: {e}")

    @classmethod
    def parse_cluster_config_file(cls, file_path: str) -> ClusterContext:
        return cls.parse_cluster_config(cls.read_file(file_path))
