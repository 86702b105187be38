"""
Unit Tests: Configuration

Test cases:
- Defaults match the documented fee table
- YAML overlay merges per section and replaces gateways
- Missing Free tier is rejected
- APScheduler registration
"""

from datetime import timedelta

import pytest
import yaml
from pydantic import ValidationError

from ticketflow.config import FeeConfig, Settings
from ticketflow.scheduler import build_scheduler
from ticketflow.storage import InMemoryPaymentStore, YamlPaymentStore, create_store


def test_defaults(tmp_path):
    settings = Settings(data_dir=tmp_path)

    assert float(settings.fees.platform_fee_rate) == 0.01
    assert float(settings.fees.commission_rates["Free"]) == 0.05
    assert [g.id for g in settings.gateways] == ["mtn-momo"]
    assert settings.scheduler.require_verified_profile is True
    assert settings.ledger_path == tmp_path.resolve() / "ledger.yaml"


def test_yaml_overlay_merges_sections(tmp_path):
    (tmp_path / "config.yaml").write_text(
        yaml.safe_dump(
            {
                "fees": {"platform_fee_rate": 0.02},
                "scheduler": {"max_workers": 8},
                "gateways": [
                    {"id": "vodafone-cash", "percent_fee": 1.5, "fixed_fee": 10},
                ],
            }
        )
    )
    settings = Settings(data_dir=tmp_path)

    settings.load_yaml_config()

    assert float(settings.fees.platform_fee_rate) == 0.02
    assert float(settings.fees.commission_rates["Pro"]) == 0.01
    assert settings.scheduler.max_workers == 8
    assert settings.scheduler.payout_batch_minutes == 60
    assert [g.id for g in settings.gateways] == ["vodafone-cash"]
    assert settings.gateways[0].fixed_fee == 10


def test_missing_config_file_keeps_defaults(tmp_path):
    settings = Settings(data_dir=tmp_path)
    settings.load_yaml_config()
    assert settings.scheduler.max_workers == 4


def test_free_tier_required():
    with pytest.raises(ValidationError):
        FeeConfig(commission_rates={"Pro": 0.01})


def test_create_store_follows_backend(tmp_path, settings):
    assert isinstance(create_store(settings), InMemoryPaymentStore)
    assert isinstance(create_store(Settings(data_dir=tmp_path)), YamlPaymentStore)


def test_payout_job_registered(settings):
    scheduler = build_scheduler(settings)

    (job,) = scheduler.get_jobs()
    assert job.id == "payout-batch"
    assert job.max_instances == 1
    assert job.trigger.interval == timedelta(minutes=60)
