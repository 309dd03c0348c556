from .bus import MessageBus
from ..messaging.bus import bus as messaging_bus
from .events import (
    RunStarted,
    RunFinished,
    EvaluationPassFinished,
    PlanCompleted,
    ResourceOperationStarted,
    ResourceOperationFinished,
    ResourceValidationFailed,
    ResourceDeferred,
    OperationBlocked,
)


class HumanReadableLogSubscriber:
    """
    Listens to runtime events and translates them into semantic messages
    on the messaging bus. It acts as a bridge between the event domain
    and the user-facing message domain.
    """

    def __init__(self, event_bus: MessageBus):
        event_bus.subscribe(RunStarted, self.on_run_started)
        event_bus.subscribe(RunFinished, self.on_run_finished)
        event_bus.subscribe(EvaluationPassFinished, self.on_pass_finished)
        event_bus.subscribe(PlanCompleted, self.on_plan_completed)
        event_bus.subscribe(ResourceOperationStarted, self.on_resource_started)
        event_bus.subscribe(ResourceOperationFinished, self.on_resource_finished)
        event_bus.subscribe(ResourceValidationFailed, self.on_validation_failed)
        event_bus.subscribe(ResourceDeferred, self.on_resource_deferred)
        event_bus.subscribe(OperationBlocked, self.on_operation_blocked)

    def on_run_started(self, event: RunStarted):
        messaging_bus.info("run.started", mode=event.mode)
        if event.inputs:
            messaging_bus.info("run.started_with_inputs", inputs=event.inputs)

    def on_run_finished(self, event: RunFinished):
        if event.status == "Succeeded":
            messaging_bus.info(
                "run.finished_success", duration=event.duration, passes=event.passes
            )
        else:
            messaging_bus.error(
                "run.finished_failure", duration=event.duration, error=event.error
            )

    def on_pass_finished(self, event: EvaluationPassFinished):
        messaging_bus.debug(
            "pass.finished",
            pass_number=event.pass_number,
            outstanding=event.outstanding,
        )

    def on_plan_completed(self, event: PlanCompleted):
        plan = event.plan
        messaging_bus.info(
            "plan.completed", entries=len(plan.entries), errors=len(plan.errors)
        )

    def on_resource_started(self, event: ResourceOperationStarted):
        messaging_bus.debug(
            "resource.started",
            operation=event.operation,
            resource_kind=event.resource_kind,
            identity=event.identity,
        )

    def on_resource_finished(self, event: ResourceOperationFinished):
        if event.status == "Succeeded":
            messaging_bus.info(
                "resource.finished_success",
                operation=event.operation,
                resource_kind=event.resource_kind,
                identity=event.identity,
                duration=event.duration,
            )
        else:
            messaging_bus.error(
                "resource.finished_failure",
                operation=event.operation,
                resource_kind=event.resource_kind,
                identity=event.identity,
                error=event.error,
            )

    def on_validation_failed(self, event: ResourceValidationFailed):
        messaging_bus.error(
            "resource.validation_failed",
            resource_kind=event.resource_kind,
            identity=event.identity,
            error=event.error,
        )

    def on_resource_deferred(self, event: ResourceDeferred):
        messaging_bus.warning(
            "resource.deferred",
            operation=event.operation,
            resource_kind=event.resource_kind,
            identity=event.identity,
            reason=event.reason,
        )

    def on_operation_blocked(self, event: OperationBlocked):
        messaging_bus.debug("operation.blocked", operation_id=event.operation_id)
