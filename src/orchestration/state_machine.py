"""Stage ordering for a net pay calculation.

The pipeline runs Validate, ApplyPension, ComputeTax, ComputeNI,
ComputeStudentLoan and Reconcile in that order. This machine only tracks
where a calculation has got to; each stage's data travels in the stage
records, not here. Running a stage out of turn raises TransitionNotAllowed.
"""

import structlog
from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

logger = structlog.get_logger()


class PipelineStateMachine(StateMachine):
    """State machine for one net pay calculation.

    States:
    - created: inputs received, nothing checked yet
    - validated: inputs normalised and checked, tax year resolved
    - pension_applied: contribution and its basis resolved
    - tax_computed: income tax for the period known
    - ni_computed: NI for the period known
    - student_loan_computed: student loan repayments known
    - reconciled: breakdown balanced and returned (final)
    - aborted: a stage failed, no breakdown produced (final)
    """

    created = State(initial=True)
    validated = State()
    pension_applied = State()
    tax_computed = State()
    ni_computed = State()
    student_loan_computed = State()
    reconciled = State(final=True)
    aborted = State(final=True)

    run_validation = created.to(validated)
    run_pension = validated.to(pension_applied)
    run_tax = pension_applied.to(tax_computed)
    run_ni = tax_computed.to(ni_computed)
    run_student_loan = ni_computed.to(student_loan_computed)
    run_reconcile = student_loan_computed.to(reconciled)
    abort = (
        created.to(aborted)
        | validated.to(aborted)
        | pension_applied.to(aborted)
        | tax_computed.to(aborted)
        | ni_computed.to(aborted)
        | student_loan_computed.to(aborted)
    )

    def after_transition(self, event: str, source: State, target: State) -> None:
        """Trace every stage change."""
        logger.debug(
            "pipeline_stage",
            transition=event,
            source=source.id,
            target=target.id,
        )

    def on_abort(self, source: State, reason: str = "") -> None:
        """Called when a stage fails.

        Args:
            source: State the calculation had reached
            reason: Description of failure
        """
        logger.warning(
            "pipeline_aborted",
            reached=source.id,
            reason=reason,
        )


__all__ = [
    "PipelineStateMachine",
    "TransitionNotAllowed",
]
