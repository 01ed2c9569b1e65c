from __future__ import annotations

import pytest

from hashfile.app.config import ApiConfig, HasherConfig, HashfileConfig, load_config
from hashfile.core.errors import ConfigError


def write(tmp_path, text: str):
    p = tmp_path / "hashfile.yaml"
    p.write_text(text, encoding="utf-8")
    return p


def test_no_path_gives_defaults():
    cfg = load_config()
    assert cfg == HashfileConfig()
    assert cfg.hasher.native_max_bytes == 500_000_000
    assert cfg.hasher.incremental_max_bytes == 50_000_000
    assert cfg.api.provider == "woleet.io"


def test_empty_file_gives_defaults(tmp_path):
    assert load_config(write(tmp_path, "")) == HashfileConfig()


def test_sections_override_defaults(tmp_path):
    p = write(
        tmp_path,
        """
hasher:
  incremental_max_bytes: 1000
  read_chunk_bytes: 4096
  secure_context: false
  probe_timeout_s: 1
api:
  base_url: https://sandbox.test/v1
  token: abc
""",
    )
    cfg = load_config(p)

    assert cfg.hasher == HasherConfig(
        incremental_max_bytes=1000,
        read_chunk_bytes=4096,
        secure_context=False,
        probe_timeout_s=1.0,
    )
    assert isinstance(cfg.hasher.probe_timeout_s, float)
    assert cfg.api == ApiConfig(base_url="https://sandbox.test/v1", token="abc")


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError) as ei:
        load_config(tmp_path / "nope.yaml")
    assert "not found" in ei.value.message


def test_invalid_yaml(tmp_path):
    with pytest.raises(ConfigError) as ei:
        load_config(write(tmp_path, "hasher: [unclosed\n"))
    assert ei.value.hint


def test_root_must_be_mapping(tmp_path):
    with pytest.raises(ConfigError):
        load_config(write(tmp_path, "- a\n- b\n"))


def test_unknown_section(tmp_path):
    with pytest.raises(ConfigError) as ei:
        load_config(write(tmp_path, "uart: {}\n"))
    assert "api, hasher" in ei.value.hint


def test_unknown_key_lists_valid_ones(tmp_path):
    with pytest.raises(ConfigError) as ei:
        load_config(write(tmp_path, "hasher:\n  chunk: 12\n"))
    assert "chunk" in ei.value.message
    assert "read_chunk_bytes" in ei.value.hint


@pytest.mark.parametrize(
    "body",
    [
        "hasher:\n  secure_context: 1\n",
        "hasher:\n  read_chunk_bytes: big\n",
        "hasher:\n  read_chunk_bytes: true\n",
        "hasher:\n  read_chunk_bytes: 0\n",
        "hasher:\n  worker_poll_interval_s: -0.5\n",
        "hasher:\n  worker_idle_timeout_s: 0\n",
        "api:\n  provider: 3\n",
        "api: nope\n",
    ],
)
def test_type_and_range_errors(tmp_path, body):
    with pytest.raises(ConfigError):
        load_config(write(tmp_path, body))
