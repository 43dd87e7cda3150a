from datetime import date

from backend.subscriptions import summarize_subscriptions


def test_monthly_equivalent_counts_monthly_and_yearly_only():
    subs = [
        {"vendor": "Stream", "amount": 15, "interval": "monthly", "status": "active"},
        {"vendor": "Cloud", "amount": 120, "interval": "yearly", "status": "active"},
        {"vendor": "Gym", "amount": 10, "interval": "weekly", "status": "active"},
        {"vendor": "Box", "amount": 30, "interval": "quarterly", "status": "active"},
        {"vendor": "Old", "amount": 50, "interval": "monthly", "status": "cancelled"},
        {"vendor": "Paused", "amount": 5, "interval": "monthly", "status": "paused"},
    ]
    summary = summarize_subscriptions(subs)
    assert summary["monthly_equivalent"] == 25.0
    assert summary["annual_equivalent"] == 300.0
    assert summary["active_count"] == 4
    assert summary["excluded_intervals"] == {
        "weekly": {"count": 1, "total": 10.0},
        "quarterly": {"count": 1, "total": 30.0},
    }


def test_empty_and_missing_amounts():
    assert summarize_subscriptions([]) == {
        "monthly_equivalent": 0.0,
        "annual_equivalent": 0.0,
        "active_count": 0,
        "next_renewal": None,
        "excluded_intervals": {},
    }
    summary = summarize_subscriptions([{"vendor": "X", "amount": None, "interval": "monthly", "status": "active"}])
    assert summary["monthly_equivalent"] == 0.0


def test_next_renewal_is_earliest_upcoming_active():
    subs = [
        {"vendor": "A", "amount": 1, "interval": "monthly", "status": "active", "next_renewal": "2024-05-01"},
        {"vendor": "B", "amount": 1, "interval": "monthly", "status": "active", "next_renewal": "2024-03-20"},
        {"vendor": "C", "amount": 1, "interval": "monthly", "status": "active", "next_renewal": "2024-03-01"},
        {"vendor": "D", "amount": 1, "interval": "monthly", "status": "cancelled", "next_renewal": "2024-03-12"},
    ]
    assert summarize_subscriptions(subs, date(2024, 3, 10))["next_renewal"] == "2024-03-20"
