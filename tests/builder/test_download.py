import base64
import json

import pytest

from servectl.api.common import ModelConfig
from servectl.builder.download import (
    build_download_manifest, encode_download_manifest, decode_download_args, download_args,
    DownloadManifest, DownloadItem,
)
from servectl.constants import SINGLE_MODEL_NAME
from servectl.errors import EncodingFailure


class TestDownloadManifest:
    """测试 downloader init容器的下载计划"""

    def test_project_code_comes_first(self, make_api, cluster):
        manifest = build_download_manifest(make_api("python"), cluster)
        project = manifest.download_args[0]
        assert project.from_ == "s3://test-bucket/projects/abc123.zip"
        assert project.to == "/mnt/project"
        assert project.unzip is True
        assert project.item_name == "the project code"
        assert project.hide_from_log is True
        assert project.hide_unzipping_log is True

    def test_models_follow_in_declaration_order(self, make_api, cluster):
        models = [
            ModelConfig(name="b", model="s3://models/b.zip"),
            ModelConfig(name="a", model="s3://models/a"),
        ]
        manifest = build_download_manifest(make_api("onnx", models=models), cluster)
        assert [item.to for item in manifest.download_args] == ["/mnt/project", "/mnt/model/b", "/mnt/model/a"]
        assert [item.unzip for item in manifest.download_args[1:]] == [True, False]
        assert manifest.download_args[1].item_name == "model b"

    def test_tensorflow_models_get_version_rename(self, make_api, cluster):
        manifest = build_download_manifest(make_api("tensorflow"), cluster)
        assert manifest.download_args[1].tf_model_version_rename == "/mnt/model/iris/1"
        assert manifest.last_log == "downloading the tensorflow serving image"

    def test_other_runtimes_skip_version_rename(self, make_api, cluster):
        manifest = build_download_manifest(make_api("onnx"), cluster)
        assert manifest.download_args[1].tf_model_version_rename == ""
        assert manifest.last_log == "downloading the onnx serving image"

    def test_single_model_item_name(self, make_api, cluster):
        models = [ModelConfig(name=SINGLE_MODEL_NAME, model="s3://models/m.onnx")]
        manifest = build_download_manifest(make_api("onnx", models=models), cluster)
        assert manifest.download_args[1].item_name == "the model"

    def test_no_models(self, make_api, cluster):
        manifest = build_download_manifest(make_api("python", models=[]), cluster)
        assert len(manifest.download_args) == 1


class TestDownloadEncoding:
    """测试 --download参数的编码"""

    def test_round_trip(self, make_api, cluster):
        models = [ModelConfig(name="m1", model="s3://models/m1.zip"), ModelConfig(name="m2", model="s3://models/m2")]
        manifest = build_download_manifest(make_api("tensorflow", models=models), cluster)

        decoded = decode_download_args(encode_download_manifest(manifest))

        assert decoded == manifest
        assert decoded.download_args[0].to == "/mnt/project"

    def test_wire_format(self):
        manifest = DownloadManifest(
            download_args=[DownloadItem(from_="s3://b/p.zip", to="/mnt/project", unzip=True)],
            last_log="done"
        )
        payload = json.loads(base64.urlsafe_b64decode(encode_download_manifest(manifest)))
        assert payload["last_log"] == "done"
        assert payload["download_args"][0]["from"] == "s3://b/p.zip"
        assert set(payload["download_args"][0]) == {
            "from", "to", "unzip", "item_name", "tf_model_version_rename", "hide_from_log", "hide_unzipping_log",
        }

    def test_download_args_flag(self, make_api, cluster):
        arg = download_args(make_api("python"), cluster)
        assert arg.startswith("--download=")
        decoded = decode_download_args(arg[len("--download="):])
        assert decoded.last_log == "downloading the python serving image"

    def test_decode_garbage(self):
        with pytest.raises(EncodingFailure):
            decode_download_args("not base64 at all!")

    def test_decode_wrong_shape(self):
        encoded = base64.urlsafe_b64encode(b'{"download_args": [{"to": 1}]}').decode()
        with pytest.raises(EncodingFailure):
            decode_download_args(encoded)
