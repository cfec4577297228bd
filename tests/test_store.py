import pytest
from sqlalchemy.exc import IntegrityError


def test_find_user_id_by_customer(store, make_user):
    user = make_user(stripe_customer_id="cus_1")

    assert store.find_user_id_by_customer("cus_1") == user.id
    assert store.find_user_id_by_customer("cus_2") is None


@pytest.mark.parametrize("customer_id", [None, ""])
def test_empty_customer_id_short_circuits_without_query(monkeypatch, store, customer_id):
    def unexpected_query(*args, **kwargs):
        raise AssertionError("store should not be queried")

    monkeypatch.setattr(store.db, "query", unexpected_query)

    assert store.find_user_id_by_customer(customer_id) is None


def test_update_reports_missing_rows(store, make_user):
    user = make_user()

    assert store.update(user.id, plan="pro") is True
    assert store.get(user.id).plan == "pro"
    assert store.update(user.id + 100, plan="pro") is False


def test_customer_id_is_unique_across_users(store, make_user):
    make_user(stripe_customer_id="cus_1")
    other = make_user()

    with pytest.raises(IntegrityError):
        store.update(other.id, stripe_customer_id="cus_1")

    # session is usable again after the rollback
    assert store.get(other.id).stripe_customer_id is None
