"""
Tests for the dues grid and its income-ledger mirroring.
"""

from dataclasses import replace

import pytest

import dues
import ledger
import members
from models import MonthlyDue, NotFoundError, PermissionDenied, ValidationError


def dues_incomes(year=2024):
    return [i for i in ledger.list_incomes(year=year) if i.type == "dues"]


class TestUnpaidContribution:
    def test_unpaid_month_counts_full_dues(self):
        assert dues.unpaid_contribution(MonthlyDue(month=1, status="unpaid", dues_amount=50000)) == 50000

    def test_paid_month_counts_shortfall_only(self):
        entry = MonthlyDue(month=1, status="paid", amount=30000, dues_amount=50000)
        assert dues.unpaid_contribution(entry) == 20000

    def test_overpaid_month_counts_nothing(self):
        entry = MonthlyDue(month=1, status="paid", amount=70000, dues_amount=50000)
        assert dues.unpaid_contribution(entry) == 0

    @pytest.mark.parametrize("status", ["-", "prepaid"])
    def test_other_statuses_count_nothing(self, status):
        assert dues.unpaid_contribution(MonthlyDue(month=1, status=status, dues_amount=50000)) == 0


class TestYearDues:
    def test_one_record_per_member_with_twelve_empty_months(self, treasurer, plain_member):
        year_dues = dues.get_year_dues(2024)
        assert [d.member_id for d in year_dues] == ["bwkang", "swkim"]
        for d in year_dues:
            assert [m.month for m in d.months] == list(range(1, 13))
            assert all(m.status == "-" and m.dues_amount == 50000 for m in d.months)
            assert d.unpaid_amount == 0

    def test_member_default_dues_used_for_new_year(self, treasurer, plain_member):
        members.set_default_dues("swkim", 30000, actor=treasurer)
        record = dues.get_member_dues("swkim", 2024)
        assert all(m.dues_amount == 30000 for m in record.months)

    def test_unpaid_amount_carries_into_next_year(self, treasurer, plain_member):
        dues.apply_dues_change("swkim", 2024, 12, "unpaid", actor=treasurer)
        assert dues.get_member_dues("swkim", 2025).unpaid_amount == 50000

    def test_unpaid_amount_carries_across_unwritten_years(self, treasurer, plain_member):
        dues.apply_dues_change("swkim", 2023, 12, "unpaid", actor=treasurer)
        assert dues.get_member_dues("swkim", 2024).unpaid_amount == 50000
        assert dues.get_member_dues("swkim", 2025).unpaid_amount == 50000
        assert dues.get_member_dues("swkim", 2023).unpaid_amount == 50000

    def test_latest_written_year_wins(self, treasurer, plain_member):
        dues.apply_dues_change("swkim", 2022, 1, "unpaid", actor=treasurer)
        dues.set_unpaid_amount("swkim", 2024, 10000, actor=treasurer)
        assert dues.get_member_dues("swkim", 2026).unpaid_amount == 10000
        assert dues.get_member_dues("swkim", 2023).unpaid_amount == 50000

    def test_reading_does_not_persist(self, plain_member):
        dues.get_year_dues(2024)
        assert not members.has_dues_history("swkim")


class TestApplyDuesChange:
    def test_full_payment_creates_dues_income(self, treasurer, plain_member):
        record = dues.apply_dues_change("swkim", 2024, 3, "paid", actor=treasurer)

        entry = record.month(3)
        assert entry.status == "paid"
        assert entry.is_paid
        assert entry.amount == 50000
        assert record.unpaid_amount == 0

        incomes = dues_incomes()
        assert len(incomes) == 1
        assert incomes[0].id == entry.income_id
        assert incomes[0].date == "2024-03-01"
        assert incomes[0].amount == 50000
        assert incomes[0].member_id == "swkim"
        assert (incomes[0].year, incomes[0].month) == (2024, 3)

    def test_partial_payment_adds_shortfall_to_unpaid(self, treasurer, plain_member):
        record = dues.apply_dues_change("swkim", 2024, 3, "paid", amount=30000, actor=treasurer)
        assert record.unpaid_amount == 20000
        assert dues_incomes()[0].amount == 30000

    def test_repaying_adjusts_existing_income(self, treasurer, plain_member):
        first = dues.apply_dues_change("swkim", 2024, 3, "paid", amount=30000, actor=treasurer)
        second = dues.apply_dues_change("swkim", 2024, 3, "paid", amount=50000, actor=treasurer)

        assert second.month(3).income_id == first.month(3).income_id
        assert second.unpaid_amount == 0
        incomes = dues_incomes()
        assert len(incomes) == 1
        assert incomes[0].amount == 50000

    def test_marking_unpaid_adds_dues_and_no_income(self, treasurer, plain_member):
        record = dues.apply_dues_change("swkim", 2024, 5, "unpaid", actor=treasurer)
        assert record.unpaid_amount == 50000
        assert record.month(5).income_id is None
        assert dues_incomes() == []

    def test_paid_to_unpaid_removes_income(self, treasurer, plain_member):
        dues.apply_dues_change("swkim", 2024, 5, "paid", actor=treasurer)
        record = dues.apply_dues_change("swkim", 2024, 5, "unpaid", actor=treasurer)
        assert record.unpaid_amount == 50000
        assert record.month(5).income_id is None
        assert dues_incomes() == []

    def test_prepaid_leaves_unpaid_and_ledger_alone(self, treasurer, plain_member):
        record = dues.apply_dues_change("swkim", 2024, 7, "prepaid", actor=treasurer)
        assert record.unpaid_amount == 0
        assert record.month(7).is_paid
        assert dues_incomes() == []

    def test_zero_paid_amount_has_no_income(self, treasurer, plain_member):
        record = dues.apply_dues_change("swkim", 2024, 2, "paid", amount=0, actor=treasurer)
        assert record.month(2).income_id is None
        assert record.unpaid_amount == 50000
        assert dues_incomes() == []

    def test_manual_override_survives_later_changes(self, treasurer, plain_member):
        dues.set_unpaid_amount("swkim", 2024, 100000, actor=treasurer)
        record = dues.apply_dues_change("swkim", 2024, 4, "unpaid", actor=treasurer)
        assert record.unpaid_amount == 150000
        record = dues.apply_dues_change("swkim", 2024, 4, "-", actor=treasurer)
        assert record.unpaid_amount == 100000

    def test_unpaid_never_goes_negative(self, treasurer, plain_member):
        dues.apply_dues_change("swkim", 2024, 4, "unpaid", actor=treasurer)
        dues.set_unpaid_amount("swkim", 2024, 10000, actor=treasurer)
        record = dues.apply_dues_change("swkim", 2024, 4, "paid", actor=treasurer)
        assert record.unpaid_amount == 0

    def test_dues_amount_override_for_one_month(self, treasurer, plain_member):
        record = dues.apply_dues_change("swkim", 2024, 6, "unpaid", dues_amount=20000, actor=treasurer)
        assert record.month(6).dues_amount == 20000
        assert record.month(7).dues_amount == 50000
        assert record.unpaid_amount == 20000

    def test_color_is_kept(self, treasurer, plain_member):
        record = dues.apply_dues_change("swkim", 2024, 1, "paid", color="sky", actor=treasurer)
        assert record.month(1).color == "sky"
        record = dues.apply_dues_change("swkim", 2024, 1, "unpaid", actor=treasurer)
        assert record.month(1).color == "sky"

    def test_member_role_cannot_change_dues(self, plain_member):
        with pytest.raises(PermissionDenied):
            dues.apply_dues_change("swkim", 2024, 1, "paid", actor=plain_member)

    def test_anonymous_cannot_change_dues(self, plain_member):
        with pytest.raises(PermissionDenied):
            dues.apply_dues_change("swkim", 2024, 1, "paid", actor=None)

    def test_rejects_bad_month_and_status(self, treasurer, plain_member):
        with pytest.raises(ValidationError):
            dues.apply_dues_change("swkim", 2024, 13, "paid", actor=treasurer)
        with pytest.raises(ValidationError):
            dues.apply_dues_change("swkim", 2024, 1, "late", actor=treasurer)
        with pytest.raises(ValidationError):
            dues.apply_dues_change("swkim", 2024, 1, "paid", amount=-1, actor=treasurer)

    def test_unknown_member(self, treasurer):
        with pytest.raises(NotFoundError):
            dues.apply_dues_change("nobody", 2024, 1, "paid", actor=treasurer)

    def test_preview_does_not_save(self, treasurer, plain_member):
        record = dues.get_member_dues("swkim", 2024)
        assert dues.preview_unpaid(record, 3, "unpaid") == 50000
        assert dues.preview_unpaid(record, 3, "paid", amount=45000) == 5000
        assert dues.get_member_dues("swkim", 2024).unpaid_amount == 0

    def test_set_unpaid_rejects_negative(self, treasurer, plain_member):
        with pytest.raises(ValidationError):
            dues.set_unpaid_amount("swkim", 2024, -5, actor=treasurer)


class TestLedgerSideEdits:
    def test_deleting_linked_income_reverts_month(self, treasurer, plain_member):
        record = dues.apply_dues_change("swkim", 2024, 3, "paid", amount=30000, actor=treasurer)
        dues.delete_income(record.month(3).income_id, actor=treasurer)

        after = dues.get_member_dues("swkim", 2024)
        assert after.month(3).status == "-"
        assert after.month(3).income_id is None
        assert after.unpaid_amount == 0
        assert dues_incomes() == []

    def test_amount_edit_follows_into_month(self, treasurer, plain_member):
        record = dues.apply_dues_change("swkim", 2024, 3, "paid", actor=treasurer)
        income = ledger.get_income(record.month(3).income_id)

        dues.update_income(replace(income, amount=40000), actor=treasurer)

        after = dues.get_member_dues("swkim", 2024)
        assert after.month(3).amount == 40000
        assert after.unpaid_amount == 10000

    def test_moving_income_to_other_month_releases_link(self, treasurer, plain_member):
        record = dues.apply_dues_change("swkim", 2024, 3, "paid", actor=treasurer)
        income = ledger.get_income(record.month(3).income_id)

        dues.update_income(replace(income, date="2024-04-10"), actor=treasurer)

        after = dues.get_member_dues("swkim", 2024)
        assert after.month(3).status == "-"
        assert after.month(3).income_id is None
        assert ledger.get_income(income.id).month == 4

    def test_unlinked_income_edit_touches_no_dues(self, treasurer, plain_member):
        income = ledger.add_income("2024-02-02", "other", 10000, actor=treasurer)
        dues.update_income(replace(income, amount=12000), actor=treasurer)
        assert ledger.get_income(income.id).amount == 12000
        assert not members.has_dues_history("swkim")


class TestHelpers:
    def test_cycle_color(self):
        assert dues.cycle_color("white") == "sky"
        assert dues.cycle_color("sky") == "pink"
        assert dues.cycle_color("pink") == "white"
        assert dues.cycle_color("bogus") == "white"

    def test_status_table(self, treasurer, plain_member):
        dues.apply_dues_change("swkim", 2024, 1, "paid", amount=50000, actor=treasurer)
        dues.apply_dues_change("swkim", 2024, 2, "unpaid", actor=treasurer)

        df = dues.monthly_status_table(2024)
        row = df[df["member"] == "Kim"].iloc[0]
        assert row["Jan"] == "50,000"
        assert row["Feb"] == "Unpaid"
        assert row["Mar"] == "-"
        assert row["unpaid"] == 50000
        assert dues.total_unpaid(2024) == 50000
