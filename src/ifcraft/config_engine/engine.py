"""Main Config Engine - orchestrates the full apply workflow.

Provides a single entry point for:
1. Validating and normalizing interface parameters
2. Rendering the ifcfg-* / route-* file
3. Calculating the diff against the file on disk
4. Reconciling file and connection through the state machine
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable, Optional

from ..config.schema import EngineSettings
from ..host.base import CommandRunner, FactProvider, PackageEnsurer
from ..host.facts import SysfsFactProvider
from ..host.packages import RpmPackageEnsurer
from ..host.runner import SubprocessRunner
from ..utils.audit_log import log_apply, setup_audit_logging
from ..utils.logging_config import timed_section
from .diff import summarize_diff
from .errors import ValidationError
from .executor import Reconciler
from .kinds import InterfaceRequest, prepare
from .parser import ConfigParser
from .renderer import IfcfgRenderer
from .schema import (
    ActivationPolicy,
    ApplyResult,
    ContentDiff,
    Ensure,
    InterfaceSpec,
    ReconcileState,
    RouteSpec,
    ValidationResult,
)
from .validator import ConfigValidator

logger = logging.getLogger(__name__)


class ConfigEngine:
    """
    Main Config Engine for converging interface files.

    Usage:
        engine = ConfigEngine(EngineSettings(scripts_dir=tmp_path))
        result = engine.apply_operation("static", {
            "name": "eth0",
            "ipaddress": ["10.0.0.5", "10.0.0.6"],
            "netmask": ["255.255.255.0", "255.255.255.0"],
        })
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        facts: Optional[FactProvider] = None,
        runner: Optional[CommandRunner] = None,
        packages: Optional[PackageEnsurer] = None,
    ):
        """
        Initialize the Config Engine.

        Args:
            settings: Engine settings (defaults to EngineSettings.from_env())
            facts: Host fact provider (defaults to sysfs)
            runner: Command runner (defaults to subprocess with timeout)
            packages: Package ensurer (defaults to rpm/yum)
        """
        self.settings = settings or EngineSettings.from_env()
        self.runner = runner or SubprocessRunner(
            timeout=self.settings.command_timeout,
            attempts=self.settings.command_retries,
        )
        self.facts = facts or SysfsFactProvider(self.settings.sysfs_root)
        self.packages = packages or RpmPackageEnsurer(
            self.runner, installer=self.settings.package_installer
        )
        self.parser = ConfigParser(self.facts)
        self.renderer = IfcfgRenderer()
        self.reconciler = Reconciler(
            self.runner,
            scripts_dir=self.settings.scripts_dir,
            tool=self.settings.tool,
            timeout=self.settings.command_timeout,
            packages=self.packages,
        )

        self.audit_file = None
        if self.settings.audit_dir:
            self.audit_file = setup_audit_logging(self.settings.audit_dir)

        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, name: str) -> threading.Lock:
        """One lock per interface name; applies of a name never interleave."""
        with self._locks_guard:
            if name not in self._locks:
                self._locks[name] = threading.Lock()
            return self._locks[name]

    # === Apply ===

    def apply_operation(
        self,
        operation: str,
        params: dict[str, Any],
        policy: Optional[ActivationPolicy] = None,
    ) -> ApplyResult:
        """
        Prepare one kind preset and apply it.

        Preset errors (missing address for static, malformed alias
        device, ...) come back as a failed result like any other
        validation failure.
        """
        try:
            request = prepare(operation, params)
        except ValidationError as e:
            result = self._rejected(e.name, e, policy)
            self._audit(result, operation, "")
            return result
        return self.apply(request, policy)

    def apply(
        self,
        request: InterfaceRequest,
        policy: Optional[ActivationPolicy] = None,
    ) -> ApplyResult:
        """
        Apply one prepared request.

        This is the main entry point. It:
        1. Parses and validates the parameters into an InterfaceSpec
        2. Renders the file content
        3. Reconciles file and connection (or dry-runs)

        Args:
            request: Prepared request from a kind preset
            policy: Activation policy (defaults from settings)

        Returns:
            ApplyResult; failures are recorded on it, never raised
        """
        policy = policy or self.settings.policy()

        with self._lock_for(request.name):
            logger.info(
                f"{'DRY RUN: ' if policy.dry_run else ''}"
                f"Applying {request.operation} {request.name}"
            )
            try:
                if request.is_route:
                    result = self._apply_routes(request, policy)
                else:
                    result = self._apply_interface(request, policy)
            except ValidationError as e:
                result = self._rejected(request.name, e, policy)

        kind = "route" if request.is_route else request.kind.value
        self._audit(result, request.operation, kind)
        return result

    def _apply_interface(
        self,
        request: InterfaceRequest,
        policy: ActivationPolicy
    ) -> ApplyResult:
        with timed_section("parse", request.name):
            spec = self.parse(request)
        with timed_section("render", request.name):
            content = self.renderer.render_text(spec)

        flush_device = spec.device if spec.flags.flush else None
        return self.reconciler.apply(
            spec.name,
            content,
            policy,
            ensure=self._activation_target(request, spec.ensure),
            flush_device=flush_device,
            connection=request.connection,
            requires=request.requires,
        )

    def _apply_routes(
        self,
        request: InterfaceRequest,
        policy: ActivationPolicy
    ) -> ApplyResult:
        routes = self.parse_routes(request)
        content = self.renderer.render_routes_text(routes)
        return self.reconciler.apply(
            routes.name,
            content,
            policy,
            ensure=Ensure.UP,
            prefix="route",
        )

    @staticmethod
    def _activation_target(request: InterfaceRequest, ensure: Ensure) -> Ensure:
        """Aliases live on their parent's connection, which stays up."""
        if request.connection and request.connection != request.name:
            return Ensure.UP
        return ensure

    def _rejected(
        self,
        name: str,
        error: ValidationError,
        policy: Optional[ActivationPolicy],
    ) -> ApplyResult:
        logger.error(error.message)
        result = ApplyResult(
            name=name,
            dry_run=bool(policy and policy.dry_run),
            error=error.message,
            exception=error,
        )
        result.transition(ReconcileState.FAILED)
        return result

    def _audit(self, result: ApplyResult, operation: str, kind: str) -> None:
        if self.audit_file is not None:
            log_apply(result, operation, kind)

    def apply_many(
        self,
        requests: Iterable[InterfaceRequest],
        policy: Optional[ActivationPolicy] = None,
        workers: Optional[int] = None,
    ) -> list[ApplyResult]:
        """
        Apply several requests, optionally in parallel.

        Each interface's own pipeline stays sequential; distinct
        interfaces may run concurrently. Results keep input order.

        Args:
            requests: Prepared requests
            policy: Activation policy for all of them
            workers: Parallel workers (defaults from settings)
        """
        requests = list(requests)
        workers = workers or self.settings.workers

        if workers <= 1 or len(requests) <= 1:
            return [self.apply(request, policy) for request in requests]

        logger.info(f"Applying {len(requests)} interfaces with {workers} workers")
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(lambda r: self.apply(r, policy), requests))

    # === Inspection ===

    def parse(self, request: InterfaceRequest) -> InterfaceSpec:
        """Parse a request into an InterfaceSpec (for external use)."""
        return self.parser.parse(request.params, kind=request.kind, extra=request.extra)

    def parse_routes(self, request: InterfaceRequest) -> RouteSpec:
        return self.parser.parse_routes(request.name, request.routes or [])

    def validate(self, request: InterfaceRequest) -> ValidationResult:
        """Validate a request without raising (for external use)."""
        if request.is_route:
            try:
                self.parse_routes(request)
            except ValidationError as e:
                return ValidationResult(valid=False, errors=e.errors)
            return ValidationResult(valid=True)
        return ConfigValidator(request.kind).validate(request.params)

    def render(self, request: InterfaceRequest) -> str:
        """Render the full file content for a request.

        Raises:
            ValidationError: If the parameters are malformed
        """
        if request.is_route:
            return self.renderer.render_routes_text(self.parse_routes(request))
        return self.renderer.render_text(self.parse(request))

    def target_path(self, request: InterfaceRequest) -> str:
        prefix = "route" if request.is_route else "ifcfg"
        return str(self.reconciler.target_path(request.name, prefix))

    def diff(self, request: InterfaceRequest) -> ContentDiff:
        """Diff the rendered content against the file on disk."""
        prefix = "route" if request.is_route else "ifcfg"
        path = self.reconciler.target_path(request.name, prefix)
        return self.reconciler.diff_engine.calculate(path, self.render(request))

    def preview(self, request: InterfaceRequest) -> str:
        """
        Preview changes without applying.

        Returns human-readable diff summary.
        """
        validation = self.validate(request)
        if not validation.valid:
            return "Validation failed:\n" + "\n".join(validation.errors)
        try:
            diff = self.diff(request)
        except ValidationError as e:
            return "Validation failed:\n" + "\n".join(e.errors)
        return summarize_diff(diff)
