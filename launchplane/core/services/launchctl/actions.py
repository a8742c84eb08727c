"""
Action orchestration — validate, gate, build and run a lifecycle action.

Steps, in order:

    1. label validation     → failure, nothing spawned
    2. protection gate      → failure with sip_protected, nothing spawned
    3. target + command     → ``system/<label>`` or ``gui/<uid>/<label>``
    4. elevation decision   → requires_root and not already root
    5. dry-run              → the composed command string, nothing spawned
    6. execution            → PrivilegeEscalator (elevated) or
                              CommandExecutor.exec_with_retry (unprivileged)

Every outcome is an ActionResult; nothing here raises for an expected
failure.
"""

from __future__ import annotations

import logging

from launchplane.adapters.shell.command import CommandExecutor
from launchplane.adapters.shell.privilege import PrivilegeEscalator
from launchplane.core.models.action import ActionResult, ServiceAction
from launchplane.core.models.service import Service, ServiceDomain
from launchplane.core.services.launchctl.classifier import should_elevate
from launchplane.core.services.launchctl.errors import parse_error_message
from launchplane.core.services.launchctl.validation import InvalidLabelError, validate_label

logger = logging.getLogger(__name__)

LAUNCHCTL = "launchctl"

# action → launchctl subcommand (the target is appended)
ACTION_COMMANDS: dict[ServiceAction, tuple[str, ...]] = {
    ServiceAction.START: ("kickstart", "-k"),
    ServiceAction.STOP: ("kill", "SIGTERM"),
    ServiceAction.ENABLE: ("enable",),
    ServiceAction.DISABLE: ("disable",),
    ServiceAction.UNLOAD: ("bootout",),
    ServiceAction.RELOAD: ("kickstart", "-kp"),
}

EXTENSION_REFUSAL = "System extensions cannot be controlled directly"
EXTENSION_HINT = "Use System Settings or the parent application to manage system extensions"


_PAST_TENSE = {
    ServiceAction.START: "started",
    ServiceAction.STOP: "stopped",
    ServiceAction.ENABLE: "enabled",
    ServiceAction.DISABLE: "disabled",
    ServiceAction.UNLOAD: "unloaded",
    ServiceAction.RELOAD: "reloaded",
}


def _past_tense(action: ServiceAction) -> str:
    return _PAST_TENSE[action]


def service_target(domain: ServiceDomain, label: str, uid: int) -> str:
    """launchctl target specifier: ``system/<label>`` or ``gui/<uid>/<label>``."""
    if domain == ServiceDomain.SYSTEM:
        return f"system/{label}"
    return f"gui/{uid}/{label}"


class ActionOrchestrator:
    """Execute lifecycle actions against launchd services."""

    def __init__(self, executor: CommandExecutor, escalator: PrivilegeEscalator | None = None):
        self._executor = executor
        self._context = executor.context
        self._escalator = escalator or PrivilegeEscalator(executor)

    def target_for(self, service: Service) -> str:
        return service_target(service.domain, service.label, self._context.uid)

    def build_command(self, action: ServiceAction, service: Service) -> list[str]:
        return [LAUNCHCTL, *ACTION_COMMANDS[action], self.target_for(service)]

    async def perform(
        self,
        action: ServiceAction | str,
        service: Service,
        dry_run: bool = False,
        password: str | None = None,
    ) -> ActionResult:
        """Validate and run (or dry-run) one action."""
        try:
            validate_label(service.label)
        except InvalidLabelError as e:
            return ActionResult.failure(f"Cannot {action} service", error=str(e))

        if service.is_protected:
            return ActionResult.failure(
                f"Cannot {action} service",
                error="Service is protected by System Integrity Protection",
                sip_protected=True,
            )

        try:
            action = ServiceAction(action)
        except ValueError:
            return ActionResult.failure(f"Unknown action: {action}", error="Invalid action specified")

        command = self.build_command(action, service)
        elevate = should_elevate(service.requires_root, self._context)
        command_string = " ".join(["sudo", *command] if elevate else command)

        if dry_run:
            return ActionResult.ok(f"[DRY RUN] Would execute: {command_string}", command=command_string)

        logger.info("Executing %s on %s (elevated=%s)", action, service.label, elevate)
        if elevate:
            return await self._perform_elevated(action, service, command, password)
        return await self._perform_direct(action, service, command)

    async def _perform_elevated(
        self,
        action: ServiceAction,
        service: Service,
        command: list[str],
        password: str | None,
    ) -> ActionResult:
        result = await self._escalator.execute(command, password)

        if result.needs_password:
            return ActionResult.failure("Administrator password required", error="NEEDS_PASSWORD")
        if result.auth_cancelled:
            return ActionResult.failure("Authentication cancelled")
        if result.auth_timed_out:
            return ActionResult.failure("Authentication timed out", error="AUTH_TIMEOUT")
        if result.auth_failed:
            return ActionResult.failure("Authentication failed", error="AUTH_FAILED")
        if result.success:
            return ActionResult.ok(f"Successfully {_past_tense(action)} service: {service.label}")

        parsed = parse_error_message(result.stderr, result.exit_code)
        return ActionResult.failure(
            f"Failed to {action} service",
            error=parsed.message,
            sip_protected=parsed.sip_protected,
        )

    async def _perform_direct(
        self,
        action: ServiceAction,
        service: Service,
        command: list[str],
    ) -> ActionResult:
        cmd, *args = command
        result = await self._executor.exec_with_retry(cmd, args)
        retry_info = result.retry_info
        suffix = f" (after {retry_info.attempts} attempts)" if retry_info and retry_info.retried else ""

        if result.exit_code == 0:
            return ActionResult.ok(
                f"Successfully {_past_tense(action)} service: {service.label}{suffix}",
                retry_info=retry_info,
            )

        parsed = parse_error_message(result.stderr, result.exit_code)
        logger.warning("%s %s failed: %s", action, service.label, parsed.message)
        return ActionResult.failure(
            f"Failed to {action} service{suffix}",
            error=parsed.message,
            requires_root=parsed.requires_root and not service.requires_root,
            sip_protected=parsed.sip_protected,
            retry_info=retry_info,
        )


async def perform_action(
    orchestrator: ActionOrchestrator,
    action: ServiceAction | str,
    service: Service,
    dry_run: bool = False,
    password: str | None = None,
) -> ActionResult:
    """Entry point for any service kind; extensions are refused."""
    if service.is_extension:
        return ActionResult.failure(EXTENSION_REFUSAL, error=EXTENSION_HINT)
    return await orchestrator.perform(action, service, dry_run=dry_run, password=password)
