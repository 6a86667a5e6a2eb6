from __future__ import annotations

import pytest

from connectgen.errors import SchemaError
from connectgen.generation.profile import GenerationProfile


class TestGenerationProfile:
    def test_defaults(self) -> None:
        profile = GenerationProfile()
        assert profile.client_suffix == "_connect"
        assert profile.runtime_module == "connect_runtime"
        assert profile.base_url is None

    def test_from_parameter(self) -> None:
        profile = GenerationProfile.from_parameter("base_url=http://api:9000, client_suffix=_rpc")
        assert profile.base_url == "http://api:9000"
        assert profile.client_suffix == "_rpc"
        assert profile.runtime_module == "connect_runtime"

    def test_empty_parameter(self) -> None:
        assert GenerationProfile.from_parameter("") == GenerationProfile()

    @pytest.mark.parametrize(
        "parameter",
        [
            pytest.param("colour=blue", id="unknown-key"),
            pytest.param("base_url", id="missing-value"),
            pytest.param("runtime_module=not-a-module", id="bad-module"),
            pytest.param("client_suffix=.py", id="bad-suffix"),
        ],
    )
    def test_invalid_parameter_raises(self, parameter: str) -> None:
        with pytest.raises(SchemaError):
            GenerationProfile.from_parameter(parameter)
