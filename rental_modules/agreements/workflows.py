"""Agreement Lifecycle Workflow.

State machine for agreement status changes.
"""

from rental_kernel.domain.workflow import Transition, Workflow
from rental_kernel.logging_config import get_logger

logger = get_logger("modules.agreements.workflows")


AGREEMENT_LIFECYCLE_WORKFLOW = Workflow(
    name="agreement_lifecycle",
    description="Rental agreement lifecycle",
    initial_state="pending",
    states=(
        "pending",
        "confirmed",
        "scheduled",
        "active",
        "cancelled",
        "expired",
    ),
    transitions=(
        Transition("pending", "confirmed", action="confirm"),
        Transition("pending", "scheduled", action="schedule"),
        Transition("pending", "active", action="activate"),
        Transition("pending", "cancelled", action="cancel"),
        Transition("confirmed", "scheduled", action="schedule"),
        Transition("confirmed", "active", action="activate"),
        Transition("confirmed", "cancelled", action="cancel"),
        Transition("scheduled", "active", action="activate"),
        Transition("scheduled", "cancelled", action="cancel"),
        Transition("active", "expired", action="expire"),
        Transition("active", "cancelled", action="cancel"),
    ),
    terminal_states=("cancelled", "expired"),
)

logger.info(
    "agreement_lifecycle_workflow_registered",
    extra={
        "workflow_name": AGREEMENT_LIFECYCLE_WORKFLOW.name,
        "state_count": len(AGREEMENT_LIFECYCLE_WORKFLOW.states),
        "transition_count": len(AGREEMENT_LIFECYCLE_WORKFLOW.transitions),
    },
)
