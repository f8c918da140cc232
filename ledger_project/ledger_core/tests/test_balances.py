import datetime
from decimal import Decimal
from django.test import TestCase
from ..services.balances import (account_ledger, balance_of, global_net,
                                 net_totals, trial_balance_rows)
from ..services.posting import build_journal, credit, debit, post_lines
from ..services.accounts import create_account, deactivate
from .factories import make_company

JAN_1 = datetime.date(2025, 1, 1)
FEB_1 = datetime.date(2025, 2, 1)
MAR_1 = datetime.date(2025, 3, 1)


class BalanceCalculatorTests(TestCase):

    def setUp(self):
        self.company = make_company("acme")
        self.cash = create_account(self.company, code="1000", name="Cash",
                                   ac_type="asset")
        self.capital = create_account(self.company, code="3000",
                                      name="Capital", ac_type="equity")
        self.revenue = create_account(self.company, code="4000",
                                      name="Sales", ac_type="income")
        self.rent = create_account(self.company, code="5200", name="Rent",
                                   ac_type="expense")
        post_lines(self.company, JAN_1, [
            debit(self.cash, "1000.00"), credit(self.capital, "1000.00")])
        post_lines(self.company, FEB_1, [
            debit(self.cash, "400.00"), credit(self.revenue, "400.00")])
        post_lines(self.company, MAR_1, [
            debit(self.rent, "150.00"), credit(self.cash, "150.00")])

    def test_balance_uses_normal_side(self):
        self.assertEqual(balance_of(self.cash), Decimal("1250.00"))
        self.assertEqual(balance_of(self.capital), Decimal("1000.00"))
        self.assertEqual(balance_of(self.revenue), Decimal("400.00"))
        self.assertEqual(balance_of(self.rent), Decimal("150.00"))

    def test_balance_date_range(self):
        self.assertEqual(balance_of(self.cash, as_of=FEB_1),
                         Decimal("1400.00"))
        self.assertEqual(balance_of(self.cash, date_from=FEB_1),
                         Decimal("250.00"))
        self.assertEqual(
            balance_of(self.cash, date_from=FEB_1, as_of=FEB_1),
            Decimal("400.00"))

    def test_drafts_do_not_count(self):
        build_journal(self.company, MAR_1, [
            debit(self.cash, "999.00"), credit(self.revenue, "999.00")])
        self.assertEqual(balance_of(self.cash), Decimal("1250.00"))

    def test_net_totals_single_read(self):
        totals = net_totals(self.company)
        self.assertEqual(totals[self.cash.pk],
                         (Decimal("1400.00"), Decimal("150.00")))
        self.assertNotIn(self.rent.pk, net_totals(self.company,
                                                  as_of=FEB_1))

    def test_trial_balance_columns_foot(self):
        rows = trial_balance_rows(self.company)
        debit_total = sum(r["debit_total"] for r in rows)
        credit_total = sum(r["credit_total"] for r in rows)
        self.assertEqual(debit_total, credit_total)
        self.assertEqual(debit_total, Decimal("1400.00"))
        by_code = {r["code"]: r for r in rows}
        self.assertEqual(by_code["1000"]["debit_total"], Decimal("1250.00"))
        self.assertEqual(by_code["4000"]["credit_total"], Decimal("400.00"))

    def test_trial_balance_keeps_inactive_account_with_balance(self):
        deactivate(self.rent)
        codes = [r["code"] for r in trial_balance_rows(self.company)]
        self.assertIn("5200", codes)

    def test_global_net_is_zero(self):
        self.assertEqual(global_net(self.company), Decimal("0.00"))

    def test_account_ledger_running_balance(self):
        ledger = account_ledger(self.cash, date_from=FEB_1)
        self.assertEqual(ledger["opening_balance"], Decimal("1000.00"))
        self.assertEqual([e["balance"] for e in ledger["lines"]],
                         [Decimal("1400.00"), Decimal("1250.00")])
        self.assertEqual(ledger["closing_balance"], Decimal("1250.00"))

    def test_other_company_lines_ignored(self):
        other = make_company("globex")
        cash = create_account(other, code="1000", name="Cash",
                              ac_type="asset")
        capital = create_account(other, code="3000", name="Capital",
                                 ac_type="equity")
        post_lines(other, JAN_1, [
            debit(cash, "5.00"), credit(capital, "5.00")])
        self.assertEqual(balance_of(self.cash), Decimal("1250.00"))
        self.assertEqual(balance_of(cash), Decimal("5.00"))
