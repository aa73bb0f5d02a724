from datetime import timedelta
from types import SimpleNamespace

import pytest

from glancecal.config import ConfigError, load_config, parse_config, parse_duration, resolve_timezone


def test_defaults_match_module_defaults(tmp_path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("calendars:\n  - url: 'https://example.com/cal.ics'\n", encoding="utf-8")

    cfg = load_config(str(cfg_path)).aggregation

    assert cfg.timezone == ""
    assert cfg.max_days == 5
    assert cfg.max_events == 20
    assert cfg.interval == timedelta(minutes=30)
    assert cfg.render_interval == timedelta(minutes=1)
    assert cfg.today_mode == "utc"
    assert [(c.url, c.max_events) for c in cfg.calendars] == [("https://example.com/cal.ics", 0)]


def test_full_config(tmp_path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(
        """
        timezone: 'Africa/Johannesburg'
        maxDays: 7
        maxEvents: 0
        interval: 1h30m
        requestTimeout: 10s
        todayMode: display
        calendars:
          - url: 'https://a.example/cal.ics'
            maxEvents: 3
          - url: 'webcal://b.example/cal.ics'
        output:
          html: '/tmp/agenda.html'
          inky: true
          rotate: 90
        """,
        encoding="utf-8",
    )

    cfg = load_config(str(cfg_path))

    assert cfg.aggregation.timezone == "Africa/Johannesburg"
    assert cfg.aggregation.max_days == 7
    assert cfg.aggregation.max_events == 0
    assert cfg.aggregation.interval == timedelta(hours=1, minutes=30)
    assert cfg.aggregation.request_timeout == timedelta(seconds=10)
    assert cfg.aggregation.today_mode == "display"
    assert cfg.aggregation.calendars[0].max_events == 3
    assert cfg.output.html == "/tmp/agenda.html"
    assert cfg.output.inky is True
    assert cfg.output.rotate == 90


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("30m", timedelta(minutes=30)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("250ms", timedelta(milliseconds=250)),
        ("PT30M", timedelta(minutes=30)),
        ("P1DT2H", timedelta(days=1, hours=2)),
        (90, timedelta(seconds=90)),
        ("45", timedelta(seconds=45)),
    ],
)
def test_parse_duration(raw, expected):
    assert parse_duration(raw) == expected


@pytest.mark.parametrize("raw", ["", "soon", "10x", "PT", "1h 30m", "inf"])
def test_parse_duration_rejects_garbage(raw):
    with pytest.raises(ConfigError):
        parse_duration(raw)


@pytest.mark.parametrize(
    "body",
    [
        "calendars:\n  - maxEvents: 2\n",
        "maxEvents: -1\n",
        "maxDays: 0\n",
        "interval: 0s\n",
        "todayMode: local\n",
        "- just\n- a list\n",
        "calendars: 'https://example.com/cal.ics'\n",
    ],
)
def test_invalid_configs_are_rejected(tmp_path, body):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(body, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(str(cfg_path))


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "nope.yaml"))


def test_unknown_timezone_is_a_config_error():
    with pytest.raises(ConfigError):
        resolve_timezone("Not/AZone")


def test_empty_timezone_uses_local_zone():
    assert resolve_timezone("") is not None


@pytest.mark.parametrize(
    "output",
    [
        {"rotate": "ninety"},
        {"rotate": True},
        {"width": "wide"},
        {"inky": "false"},
        {"inky": 1},
    ],
)
def test_malformed_output_values_are_config_errors(output):
    with pytest.raises(ConfigError):
        parse_config({"output": output})


def test_output_accepts_negative_rotation_and_yaml_booleans(tmp_path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("output:\n  rotate: -90\n  inky: false\n", encoding="utf-8")

    out = load_config(str(cfg_path)).output

    assert out.rotate == -90
    assert out.inky is False


def test_undeterminable_local_zone_is_a_config_error(monkeypatch):
    class ZonelessClock:
        @staticmethod
        def now():
            return SimpleNamespace(astimezone=lambda: SimpleNamespace(tzinfo=None))

    monkeypatch.setattr("glancecal.config.datetime", ZonelessClock)

    with pytest.raises(ConfigError):
        resolve_timezone("")
