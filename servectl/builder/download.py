"""`downloader` init容器的下载计划。

init容器只接收一个 `--download=<arg>` 参数，参数是DownloadManifest的JSON，
使用URL安全字母表做base64编码。总是先下载项目代码，再按声明顺序下载各个模型。
"""

import base64
import binascii
import posixpath
from typing import List

from pydantic import BaseModel, Field, ValidationError

from servectl.api.api_spec import APISpec
from servectl.api.cluster import ClusterContext
from servectl.constants import (
    PredictorType, PROJECT_DIR, MODEL_DIR, SINGLE_MODEL_NAME, TF_MODEL_VERSION, DOWNLOADER_LAST_LOG,
)
from servectl.errors import EncodingFailure

ARCHIVE_EXTENSION = ".zip"

# 要求每个模型解压到带版本号目录的运行时
_VERSIONED_MODEL_RUNTIMES = (PredictorType.TENSORFLOW,)


class DownloadItem(BaseModel):
    from_: str = Field(..., alias="from")
    to: str
    unzip: bool = False
    # 下载项名称，仅用于日志（为空时不打印）
    item_name: str = ""
    # 例如 /mnt/model/m/1：/mnt/model/m 下只有一项时，把 /mnt/model/m/* 移到 /mnt/model/m/1
    tf_model_version_rename: str = ""
    hide_from_log: bool = False
    hide_unzipping_log: bool = False

    model_config = {
        "populate_by_name": True
    }


class DownloadManifest(BaseModel):
    download_args: List[DownloadItem] = Field(default_factory=list)
    # 全部下载完成后打印（为空时不打印）
    last_log: str = ""


def _model_item_name(model_name: str) -> str:
    if model_name == SINGLE_MODEL_NAME:
        return "the model"
    return f"model {model_name}"


def build_download_manifest(api: APISpec, cluster: ClusterContext) -> DownloadManifest:
    predictor_type = PredictorType(api.predictor.type)
    items = [
        DownloadItem(
            from_=cluster.s3_path(api.project_key),
            to=PROJECT_DIR,
            unzip=True,
            item_name="the project code",
            hide_from_log=True,
            hide_unzipping_log=True,
        )
    ]

    for model in api.predictor.models:
        model_path = posixpath.join(MODEL_DIR, model.name)
        version_rename = ""
        if predictor_type in _VERSIONED_MODEL_RUNTIMES:
            version_rename = posixpath.join(model_path, TF_MODEL_VERSION)
        items.append(DownloadItem(
            from_=model.model,
            to=model_path,
            unzip=model.model.endswith(ARCHIVE_EXTENSION),
            item_name=_model_item_name(model.name),
            tf_model_version_rename=version_rename,
        ))

    return DownloadManifest(
        download_args=items,
        last_log=DOWNLOADER_LAST_LOG.format(predictor_type.value),
    )


def encode_download_manifest(manifest: DownloadManifest) -> str:
    try:
        payload = manifest.model_dump_json(by_alias=True).encode("utf-8")
    except (ValueError, TypeError) as e:
        raise EncodingFailure(f"Failed to encode download manifest: {e}")
    return base64.urlsafe_b64encode(payload).decode("ascii")


def decode_download_args(encoded: str) -> DownloadManifest:
    """encode_download_manifest的逆操作，由downloader执行"""
    try:
        payload = base64.urlsafe_b64decode(encoded.encode("ascii"))
        return DownloadManifest.model_validate_json(payload)
    except (binascii.Error, UnicodeError, ValueError, ValidationError) as e:
        raise EncodingFailure(f"Failed to decode download manifest: {e}")


def download_args(api: APISpec, cluster: ClusterContext) -> str:
    """downloader init容器的 `--download=...` 参数"""
    return "--download=" + encode_download_manifest(build_download_manifest(api, cluster))
