"""
Tests for YAML configuration loading.
"""

import textwrap

import pytest

from slotguard.config import AppConfig, DefaultsConfig
from slotguard.domain.models import ProfessionalStatus, Weekday


def _write(tmp_path, body):
    path = tmp_path / "config.yaml"
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


def test_load_full_config(tmp_path):
    path = _write(
        tmp_path,
        """
        timezone: America/Lima
        database_url: sqlite:///test.db
        log_level: debug
        defaults:
          interval_minutes: 20
          lookahead_weeks: 6
        professionals:
          - id: 1
            name: Dra. Rojas
            schedule:
              monday: {open: "08:00", close: "12:00"}
              Friday: {open: "14:00", close: "18:00"}
          - id: 2
            name: Dr. Salas
            status: unavailable
        """,
    )

    config = AppConfig.load_from_yaml(path)

    assert config.timezone == "America/Lima"
    assert config.log_level == "DEBUG"
    assert config.defaults.interval_minutes == 20
    assert config.defaults.lookahead_weeks == 6

    professionals = config.build_professionals()
    assert professionals[0].schedule.window_for(Weekday.FRIDAY) is not None
    assert professionals[1].status == ProfessionalStatus.UNAVAILABLE
    assert professionals[1].schedule.is_empty
    assert config.find_professional(2).name == "Dr. Salas"
    assert config.find_professional(3) is None


def test_defaults_when_empty(tmp_path):
    config = AppConfig.load_from_yaml(_write(tmp_path, ""))

    assert config.timezone == "UTC"
    assert config.defaults == DefaultsConfig()
    assert config.professionals == []


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError, match="config.example.yaml"):
        AppConfig.load_from_yaml(tmp_path / "missing.yaml")


@pytest.mark.parametrize(
    "body, message",
    [
        ("timezone: Mars/Olympus\n", "Unknown timezone"),
        ("log_level: chatty\n", "log_level"),
        ("defaults:\n  interval_minutes: 0\n", "interval_minutes"),
        ("defaults:\n  lookahead_weeks: -1\n", "lookahead_weeks"),
        (
            "professionals:\n  - {id: 1, name: A}\n  - {id: 1, name: B}\n",
            "Duplicate professional id",
        ),
        (
            "professionals:\n  - id: 1\n    name: A\n    schedule: {funday: {open: '08:00', close: '09:00'}}\n",
            "funday",
        ),
        (
            "professionals:\n  - id: 1\n    name: A\n    schedule: {monday: {open: '10:00', close: '09:00'}}\n",
            "monday",
        ),
        ("- just\n- a list\n", "mapping at the root"),
        ("timezone: [unclosed\n", "Invalid YAML"),
    ],
)
def test_invalid_config(tmp_path, body, message):
    with pytest.raises(ValueError, match=message):
        AppConfig.load_from_yaml(_write(tmp_path, body))
