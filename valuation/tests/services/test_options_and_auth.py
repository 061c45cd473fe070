import pytest

from valuation.core.config import get_settings
from valuation.core.types import ActorRole, OptionCategory
from valuation.seed import seed
from valuation.services.auth_service import authenticate, create_user
from valuation.services.options_service import OptionsProvider


def test_options_start_with_defaults(db):
    values = OptionsProvider().get_options(db, client_id="bank-a", category=OptionCategory.banks)
    assert values == get_settings().default_banks


def test_added_option_is_scoped_to_client_and_deduplicated(db):
    svc = OptionsProvider()
    out = svc.add_option(db, client_id="bank-a", category="cities", value="  Bhavnagar ", created_by="manager")
    assert out[-1] == "Bhavnagar"

    again = svc.add_option(db, client_id="bank-a", category="cities", value="bhavnagar", created_by="manager")
    assert again == out

    other_client = svc.get_options(db, client_id="bank-b", category="cities")
    assert "Bhavnagar" not in other_client


@pytest.mark.parametrize("value", ["", "   ", "Other"])
def test_option_value_rules(db, value):
    with pytest.raises(ValueError):
        OptionsProvider().add_option(db, client_id="bank-a", category="dsas", value=value, created_by="manager")


def test_authenticate(db):
    create_user(db, client_id="bank-a", username="asha", password="s3cret", role=ActorRole.manager)

    p = authenticate(db, "bank-a", "asha", "s3cret")
    assert p is not None
    assert p.role == ActorRole.manager
    assert p.client_id == "bank-a"

    assert authenticate(db, "bank-a", "asha", "wrong") is None
    assert authenticate(db, "bank-b", "asha", "s3cret") is None


def test_duplicate_user_rejected(db):
    create_user(db, client_id="bank-a", username="asha", password="x1", role="user")
    with pytest.raises(ValueError):
        create_user(db, client_id="bank-a", username="asha", password="x2", role="user")


def test_seed_is_repeatable(db):
    assert seed(db, client_id="bank-a", password="pass123") == 3
    assert seed(db, client_id="bank-a", password="pass123") == 0
    assert authenticate(db, "bank-a", "manager", "pass123").role == ActorRole.manager
