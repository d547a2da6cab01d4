import json

import pytest

from droppy.core import cfg
from droppy.core.errors import ConfigInitError


def test_init_writes_defaults_when_missing(paths):
    data = cfg.init(paths)
    assert paths.cfg_file.exists()
    assert json.loads(paths.cfg_file.read_text()) == data
    assert data["linkLength"] == cfg.DEFAULTS["linkLength"]


def test_init_keeps_existing_file_and_fills_missing_keys(paths):
    paths.config.mkdir(parents=True)
    paths.cfg_file.write_text('{"public": true}')

    data = cfg.init(paths)

    assert data["public"] is True
    assert data["timestamps"] is True
    assert json.loads(paths.cfg_file.read_text()) == {"public": True}


def test_load_rejects_invalid_json(paths):
    paths.config.mkdir(parents=True)
    paths.cfg_file.write_text("{not json")
    with pytest.raises(ConfigInitError) as exc:
        cfg.load(paths)
    assert exc.value.code == "ERR_CONFIG_INIT"


def test_load_rejects_non_object(paths):
    paths.config.mkdir(parents=True)
    paths.cfg_file.write_text("[1, 2]")
    with pytest.raises(ConfigInitError):
        cfg.load(paths)
