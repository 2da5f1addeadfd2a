import json

import pytest

from carla_bootstrap import run_scenario


def test_defaults_to_localhost(api, server, capsys):
    assert run_scenario.main([], api=api) == 0
    client = server.clients[0]
    assert (client.host, client.port, client.timeout) == ("localhost", 2000, 40.0)
    assert capsys.readouterr().out == ""


def test_host_and_port(api, server):
    assert run_scenario.main(["10.0.0.5", "2010", "--timeout", "3"], api=api) == 0
    client = server.clients[0]
    assert (client.host, client.port, client.timeout) == ("10.0.0.5", 2010, 3.0)


@pytest.mark.parametrize("argv", [["onlyhost"], ["a", "1", "extra"], ["host", "port"]])
def test_bad_positional_arguments(argv, api, server, capsys):
    assert run_scenario.main(argv, api=api) == 2
    assert "Exception:" in capsys.readouterr().out
    assert server.clients == []


def test_timeout_exit_code(api, server, capsys):
    server.failures["connect"] = RuntimeError("time-out of 40000ms while waiting for the simulator")
    assert run_scenario.main([], api=api) == 1
    assert "time-out of 40000ms" in capsys.readouterr().out


def test_other_error_exit_code(api, server, capsys):
    server.maps = []
    assert run_scenario.main([], api=api) == 2
    assert "Exception: Cannot select from an empty map catalog" in capsys.readouterr().out


def test_invalid_port_value(api, capsys):
    assert run_scenario.main(["localhost", "0"], api=api) == 2
    assert "Exception:" in capsys.readouterr().out


def test_config_file_and_overrides(api, server, tmp_path):
    config = tmp_path / "bootstrap.json"
    config.write_text(json.dumps({"host": "fromfile", "port": 2100, "seed": 9}), encoding="utf-8")
    assert run_scenario.main(["--config", str(config)], api=api) == 0
    assert (server.clients[0].host, server.clients[0].port) == ("fromfile", 2100)

    assert run_scenario.main(["override", "2200", "--config", str(config)], api=api) == 0
    assert (server.clients[1].host, server.clients[1].port) == ("override", 2200)


def test_sensor_flag_builds_sensor_settings(tmp_path):
    args = run_scenario._parse_args(["--sensor", "--sensor-duration", "0", "--output-dir", str(tmp_path)])
    settings = run_scenario.build_settings(args)
    assert settings.sensor is not None
    assert settings.sensor.duration_s == 0.0
    assert settings.sensor.output_dir == str(tmp_path)
