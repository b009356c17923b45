from pydantic import BaseModel, Field


class ClusterContext(BaseModel):
    """Cluster-wide settings threaded into every compilation"""

    cluster_name: str = Field(default="cortex")
    bucket: str = Field(default="cortex-bucket")
    provider: str = Field(default="aws")
    image_downloader: str = Field(default="cortexlabs/downloader:latest")
    image_request_monitor: str = Field(default="cortexlabs/request-monitor:latest")
    image_neuron_rtd: str = Field(default="cortexlabs/neuron-rtd:latest")

    model_config = {
        "populate_by_name": True,
        "frozen": True
    }

    def s3_path(self, key: str) -> str:
        return f"s3://{self.bucket}/{key.lstrip('/')}"
