from pydantic import BaseModel, Field, model_validator
from typing import Optional, Tuple, Dict, Union
from servectl.constants import PredictorType, HardwareMode, SINGLE_MODEL_NAME


class ComputeRequest(BaseModel):
    cpu: Optional[Union[int, float, str]] = Field(default=None, description="CPU请求，如 1, 0.5 或 '500m'")
    mem: Optional[Union[int, str]] = Field(default=None, description="内存请求，如 '2Gi' 或字节数")
    gpu: int = Field(default=0, ge=0, description="GPU数量")
    inf: int = Field(default=0, ge=0, description="Inferentia芯片数量")

    model_config = {
        "frozen": True
    }

    @property
    def hardware_mode(self) -> HardwareMode:
        if self.inf > 0:
            return HardwareMode.INF
        if self.gpu > 0:
            return HardwareMode.GPU
        return HardwareMode.NONE


class AutoscalingConfig(BaseModel):
    min_replicas: int = Field(default=1, ge=0)
    max_replicas: int = Field(default=100, ge=0)
    init_replicas: int = Field(default=1, ge=0)
    workers_per_replica: int = Field(default=1, ge=1)
    threads_per_worker: int = Field(default=1, ge=1)
    max_replica_concurrency: int = Field(default=1024, ge=1)

    model_config = {
        "frozen": True
    }


class UpdateStrategy(BaseModel):
    max_surge: Union[int, str] = Field(default="25%")
    max_unavailable: Union[int, str] = Field(default="25%")

    model_config = {
        "frozen": True
    }


class ModelConfig(BaseModel):
    name: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1, description="模型位置，如 s3://bucket/model.zip")

    model_config = {
        "frozen": True
    }


class PredictorConfig(BaseModel):
    type: PredictorType
    image: str
    tensorflow_serving_image: Optional[str] = None
    models: Tuple[ModelConfig, ...] = Field(default_factory=tuple)
    python_path: Optional[str] = None
    env: Dict[str, str] = Field(default_factory=dict)

    model_config = {
        "populate_by_name": True,
        "frozen": True
    }

    @model_validator(mode="before")
    @classmethod
    def expand_single_model(cls, data):
        """Expand the `model: <path>` shortcut into a one-item models list"""
        if isinstance(data, dict) and data.get("model"):
            data = dict(data)
            if data.get("models"):
                raise ValueError("specify either 'model' or 'models', not both")
            data["models"] = [{"name": SINGLE_MODEL_NAME, "model": data.pop("model")}]
        return data
