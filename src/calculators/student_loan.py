"""Student loan repayments: a flat rate on earnings above a plan threshold."""

from __future__ import annotations

from src.core.errors import InvalidInput
from src.tax.models import PayFrequency, StudentLoanPlan, StudentLoanRepayment
from src.tax.money import Minor, apply_permille
from src.tax.store import RateTableStore
from src.tax.year import TaxYear


class StudentLoanCalculator:
    """Repayments for any plan in one tax year."""

    def __init__(self, store: RateTableStore, tax_year: TaxYear | str) -> None:
        self.store = store
        self.tax_year = tax_year

    def repayment(
        self,
        plan: StudentLoanPlan,
        annual_earnings_minor: Minor,
        frequency: PayFrequency = PayFrequency.ANNUAL,
    ) -> StudentLoanRepayment:
        """Repayment for one period.

        ``floor(max(0, earnings - threshold) * rate)`` gives the annual
        repayment, which is then divided by the frequency's divisor and
        rounded down. ``StudentLoanPlan.NONE`` is always zero and never
        consults the rate tables.

        Raises:
            InvalidInput: If earnings are negative.
            UnsupportedStudentLoanPlan: If the year has no terms for the plan.
        """
        if annual_earnings_minor < 0:
            raise InvalidInput(
                f"Earnings cannot be negative, got {annual_earnings_minor}", field="earnings"
            )
        if plan is StudentLoanPlan.NONE:
            return StudentLoanRepayment(
                plan=plan, threshold_minor=0, rate_permille=0, amount_minor=0
            )

        terms = self.store.get_student_loan_terms(self.tax_year, plan)
        annual = apply_permille(max(0, annual_earnings_minor - terms.threshold_minor), terms.rate_permille)
        return StudentLoanRepayment(
            plan=plan,
            threshold_minor=terms.threshold_minor,
            rate_permille=terms.rate_permille,
            amount_minor=annual // frequency.periods_per_year,
        )

    def repayments(
        self,
        plan: StudentLoanPlan,
        annual_earnings_minor: Minor,
        frequency: PayFrequency = PayFrequency.ANNUAL,
        postgraduate_loan: bool = False,
    ) -> tuple[StudentLoanRepayment, ...]:
        """Repayments for an undergraduate plan plus an optional Postgraduate Loan.

        A Postgraduate Loan is repaid alongside any undergraduate plan, each
        against its own threshold.
        """
        plans: list[StudentLoanPlan] = []
        if plan is not StudentLoanPlan.NONE:
            plans.append(plan)
        if postgraduate_loan and StudentLoanPlan.POSTGRADUATE not in plans:
            plans.append(StudentLoanPlan.POSTGRADUATE)
        return tuple(self.repayment(p, annual_earnings_minor, frequency) for p in plans)
