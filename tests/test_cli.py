"""
Smoke tests for the CLI commands.
"""

import textwrap

import pytest
from typer.testing import CliRunner

from slotguard.cli.app import app

runner = CliRunner()


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        textwrap.dedent(
            f"""
            timezone: UTC
            database_url: sqlite:///{tmp_path / 'cli.db'}
            professionals:
              - id: 1
                name: Dr. Ana Torres
                schedule:
                  monday: {{open: "08:00", close: "10:00"}}
              - id: 2
                name: Dr. Luis Ramos
                status: unavailable
            """
        ),
        encoding="utf-8",
    )
    return str(path)


def test_availability_mock(config_path):
    result = runner.invoke(app, ["availability", "1", "-w", "2024-11-25", "--mock", "-c", config_path])

    assert result.exit_code == 0
    assert "09:30" in result.output
    assert "no schedule configured" in result.output


def test_availability_unknown_professional(config_path):
    result = runner.invoke(app, ["availability", "9", "-w", "2024-11-25", "--mock", "-c", config_path])

    assert result.exit_code == 1
    assert "Professional 9 not found" in result.output


def test_claim_outside_schedule_is_rejected(config_path):
    result = runner.invoke(app, ["claim", "1", "2024-11-25", "10:00", "--name", "Ana", "--mock", "-c", config_path])

    assert result.exit_code == 2


def test_claim_unavailable_professional_is_rejected(config_path):
    result = runner.invoke(
        app,
        ["claim", "2", "2024-11-25", "09:00", "--name", "Ana", "--override", "emergency", "--mock", "-c", config_path],
    )

    assert result.exit_code == 2


def test_database_workflow(config_path):
    assert runner.invoke(app, ["init-db", "-c", config_path]).exit_code == 0

    claimed = runner.invoke(app, ["claim", "1", "2024-11-25", "09:00", "--name", "Ana", "-c", config_path])
    taken = runner.invoke(app, ["claim", "1", "2024-11-25", "09:00", "--name", "Bob", "-c", config_path])
    confirmed = runner.invoke(app, ["set-status", "1", "confirmed", "-c", config_path])
    listed = runner.invoke(app, ["professionals", "-c", config_path])

    assert claimed.exit_code == 0
    assert taken.exit_code == 2
    assert "already taken" in taken.output
    assert confirmed.exit_code == 0
    assert "confirmed" in confirmed.output
    assert "Dr. Luis Ramos" in listed.output


def test_set_status_unknown_appointment(config_path):
    runner.invoke(app, ["init-db", "-c", config_path])

    result = runner.invoke(app, ["set-status", "77", "cancelled", "-c", config_path])

    assert result.exit_code == 1
    assert "Appointment 77 not found" in result.output


def test_missing_config(tmp_path):
    result = runner.invoke(app, ["professionals", "-c", str(tmp_path / "nope.yaml")])

    assert result.exit_code == 1


def test_next_week_without_availability_suggests_alternatives(config_path):
    result = runner.invoke(app, ["next-week", "2", "-w", "2024-11-25", "-m", "2", "--mock", "-c", config_path])

    assert result.exit_code == 0
    assert "No week with open slots" in result.output
    assert "another professional" in result.output
