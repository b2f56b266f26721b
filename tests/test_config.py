import json
from pathlib import Path

import pytest

from multilisten.config import HTTPSConfig, MaterialShape, ServeConfig, load_config_file
from multilisten.errors import FATAL_EXIT_STATUS, ConfigurationError


def test_load_config_file(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"listen": ["localhost:5555"]}))
    assert load_config_file(config_path) == {"listen": ["localhost:5555"]}


def test_load_config_file_errors(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="Cannot read config file") as exc_info:
        load_config_file(tmp_path / "missing.json")
    assert exc_info.value.exit_status == FATAL_EXIT_STATUS

    config_path = tmp_path / "config.json"
    config_path.write_text("{not json")
    with pytest.raises(ConfigurationError, match="not valid JSON"):
        load_config_file(config_path)


def test_https_paths_relative_to_config(tmp_path: Path) -> None:
    config_path = tmp_path / "conf" / "config.json"
    https = HTTPSConfig.from_config_values(
        {"key": "key.pem", "cert": "/etc/cert.pem", "ca": "ca.pem", "passphrase": 123},
        config_path,
    )
    assert https.key == str(tmp_path / "conf" / "key.pem")
    # Absolute paths stay as they are
    assert https.cert == "/etc/cert.pem"
    assert https.passphrase is None

    https = HTTPSConfig.from_config_values({"key": "key.pem"})
    assert https.key == "key.pem"


def test_https_section_of_wrong_type() -> None:
    assert HTTPSConfig.from_config_values("cert.pem") == HTTPSConfig()
    assert HTTPSConfig.from_config_values(None) == HTTPSConfig()
    assert HTTPSConfig.from_config_values({"key": 1, "cert": ""}) == HTTPSConfig()


def test_material_shape() -> None:
    assert HTTPSConfig().material_shape() is None
    assert HTTPSConfig(key="k", cert="c").material_shape() is None
    assert HTTPSConfig(key="k", cert="c", ca="a").material_shape() == MaterialShape.KEY_CERT_CA
    assert HTTPSConfig(pfx="p").material_shape() == MaterialShape.PFX
    assert (
        HTTPSConfig(key="k", cert="c", ca="a", pfx="p").material_shape() == MaterialShape.PFX
    )


def test_serve_config() -> None:
    config = ServeConfig.from_mapping({"listen": "4873", "https": {"pfx": "server.pfx"}})
    assert config.listen == "4873"
    assert config.https == HTTPSConfig(pfx="server.pfx")

    config = ServeConfig.from_mapping({})
    assert config.listen is None
    assert config.https == HTTPSConfig()


@pytest.mark.parametrize("config", [None, ["4873"], "4873", 4873])
def test_serve_config_must_be_mapping(config: object) -> None:
    with pytest.raises(ConfigurationError, match="config file must be an object"):
        ServeConfig.from_mapping(config)
