import pytest
from pydantic import ValidationError

from cuberoot.bootstrap.config.loader import resolve_configfile
from cuberoot.bootstrap.config.settings import CubeRootConfig, ServerSettings
from cuberoot.bootstrap.deps import get_config, get_load_generator


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("CUBEROOTCONFIG", raising=False)
    monkeypatch.delenv("CUBEROOT_SERVER__PORT", raising=False)


@pytest.mark.ut
def test_defaults():
    config = CubeRootConfig.from_file(None)

    assert config.server.host == "127.0.0.1"
    assert config.server.port == 8085
    assert config.server.delimiter == "\t"
    assert config.server.idle_timeout == 10.0
    assert config.server.limit_concurrency is None
    assert config.loadgen.requests == 5


@pytest.mark.ut
def test_from_file(config_file):
    config = CubeRootConfig.from_file(config_file)

    assert config.server.port == 9100
    assert config.server.delimiter == "\n"
    assert config.server.idle_timeout == 2.5
    assert config.server.limit_concurrency == 8
    assert config.loadgen.clients == 3
    assert config.loadgen.requests == 7


@pytest.mark.ut
def test_environment_overrides_file(config_file, monkeypatch):
    monkeypatch.setenv("CUBEROOT_SERVER__PORT", "9200")

    config = CubeRootConfig.from_file(config_file)

    assert config.server.port == 9200
    assert config.server.idle_timeout == 2.5


@pytest.mark.ut
def test_to_server_config(config_file):
    server = CubeRootConfig.from_file(config_file).server.to_server_config()

    assert server.delimiter == b"\n"
    assert server.port == 9100
    assert server.max_message_size == 1024
    assert server.timeout_graceful_shutdown == 1.0


@pytest.mark.ut
@pytest.mark.parametrize("delimiter", ["", "ab", "é"])
def test_delimiter_must_be_one_byte(delimiter):
    with pytest.raises(ValidationError):
        ServerSettings(delimiter=delimiter)


@pytest.mark.ut
@pytest.mark.parametrize("field, value", [("idle_timeout", 0), ("port", 70000), ("limit_concurrency", 0)])
def test_invalid_values(field, value):
    with pytest.raises(ValidationError):
        ServerSettings(**{field: value})


@pytest.mark.ut
def test_get_config_reports_validation_errors(tmp_path):
    file = tmp_path / "bad.yaml"
    file.write_text("server:\n  idle_timeout: -1\n")

    with pytest.raises(SystemExit) as info:
        get_config(file)

    assert "Configuration validation failed" in str(info.value)
    assert "server.idle_timeout" in str(info.value)


@pytest.mark.ut
def test_get_config_rejects_non_mapping(tmp_path):
    file = tmp_path / "list.yaml"
    file.write_text("- 1\n- 2\n")

    with pytest.raises(SystemExit):
        get_config(file)


@pytest.mark.ut
def test_resolve_explicit_missing_file(tmp_path):
    with pytest.raises(SystemExit):
        resolve_configfile(str(tmp_path / "missing.yaml"))


@pytest.mark.ut
def test_resolve_from_environment(config_file, monkeypatch):
    monkeypatch.setenv("CUBEROOTCONFIG", str(config_file))

    assert resolve_configfile(None) == config_file


@pytest.mark.ut
def test_resolve_default_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert resolve_configfile(None) is None

    (tmp_path / "cuberoot.yaml").write_text("server: {}\n")
    assert resolve_configfile(None) == tmp_path / "cuberoot.yaml"


@pytest.mark.ut
def test_get_load_generator(config_file):
    generator = get_load_generator(get_config(config_file))

    assert (generator.host, generator.port) == ("127.0.0.1", 9100)
    assert generator.clients == 3
    assert generator.requests == 7
    assert generator.timeout == 1.5
    assert generator.delimiter == b"\n"
