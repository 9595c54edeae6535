"""Backup and restore runs over the site registry.

Backup and restore apply different failure sequencing to the same step
results:

- Backup uses ``ContinueOnError``: each site's database dump and file
  snapshot are independent, so one failing never stops the other, and a
  failing site never stops the sites after it.
- Restore uses ``AbortOnFirstFailure``: resolve, restore files, restore
  database depend on each other, so the first failure ends the run.

Sites are processed one at a time in registry order.

Usage:
    from site_backup.factory import build_orchestrator

    orchestrator = build_orchestrator(config)
    result = await orchestrator.run_backup()
    result = await orchestrator.run_restore("shop", "a1b2", confirm=lambda plan: True)
"""

import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field

from site_backup.config.models import BackupConfig, SiteSpec
from site_backup.database.dump_restore import DatabaseAdapter
from site_backup.errors import ConfigurationError, SiteBackupError
from site_backup.runlog import RunLog
from site_backup.snapshot.committer import StagedChangeCommitter, backup_message
from site_backup.snapshot.mirror import MirrorStager, build_exclude_patterns
from site_backup.snapshot.models import CommitInfo, CommitOutcome
from site_backup.snapshot.repository import RepositoryManager
from site_backup.snapshot.resolver import RestoreResolver

logger = logging.getLogger(__name__)


# ============================================================================
# Step results
# ============================================================================


class StepResult(BaseModel):
    """Outcome of one step for one site."""

    site: str
    step: str
    success: bool
    detail: str = ""
    error: str | None = None


class BackupRunResult(BaseModel):
    """Aggregated outcome of a backup run."""

    sites: list[str] = Field(default_factory=list)
    steps: list[StepResult] = Field(default_factory=list)

    @property
    def failures(self) -> list[StepResult]:
        return [s for s in self.steps if not s.success]

    @property
    def success(self) -> bool:
        return not self.failures


class RestorePlan(BaseModel):
    """What a restore is about to overwrite, shown for confirmation."""

    site: str
    target: Path
    repository: Path
    reference: str | None = None
    db_name: str


class RestoreRunResult(BaseModel):
    """Outcome of a restore run."""

    site: str
    reference: str | None = None
    cancelled: bool = False
    steps: list[StepResult] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.cancelled and all(s.success for s in self.steps)


# ============================================================================
# Failure sequencing policies
# ============================================================================


StepFunc = Callable[[], Awaitable[str]]
Step = tuple[str, StepFunc]


async def run_step(site: str, name: str, func: StepFunc, run_log: RunLog) -> StepResult:
    """Run one step, turning a ``SiteBackupError`` into a failed result.

    The step function returns the message recorded for its success.  A
    failure is written to the run log as an error entry.
    """
    try:
        detail = await func()
    except SiteBackupError as e:
        run_log.error(f"{name} failed for {site}: {e}")
        return StepResult(site=site, step=name, success=False, error=str(e))

    run_log.entry(detail)
    return StepResult(site=site, step=name, success=True, detail=detail)


class StepPolicy(Protocol):
    """Sequencing strategy for a list of steps."""

    name: str

    async def run(self, site: str, steps: list[Step], run_log: RunLog) -> list[StepResult]:
        ...


class ContinueOnError:
    """Run every step; a failure is recorded and the next step still runs."""

    name = "continue-on-error"

    async def run(self, site: str, steps: list[Step], run_log: RunLog) -> list[StepResult]:
        return [await run_step(site, name, func, run_log) for name, func in steps]


class AbortOnFirstFailure:
    """Run steps in order and stop after the first failure."""

    name = "abort-on-first-failure"

    async def run(self, site: str, steps: list[Step], run_log: RunLog) -> list[StepResult]:
        results: list[StepResult] = []
        for name, func in steps:
            result = await run_step(site, name, func, run_log)
            results.append(result)
            if not result.success:
                break
        return results


# ============================================================================
# Orchestrator
# ============================================================================


class Orchestrator:
    """Sequences the engine components for backup and restore runs.

    Args:
        config: Immutable run configuration.
        repository: Snapshot repository manager.
        committer: Staged-change committer.
        resolver: Restore resolver.
        mirror: Mirror stager.
        databases: Database adapters keyed by ``SiteSpec.provider``.
        run_log: Run log; an in-memory log is used when omitted.
    """

    def __init__(
        self,
        config: BackupConfig,
        repository: RepositoryManager,
        committer: StagedChangeCommitter,
        resolver: RestoreResolver,
        mirror: MirrorStager,
        databases: dict[str, DatabaseAdapter],
        run_log: RunLog | None = None,
    ):
        self.config = config
        self.repository = repository
        self.committer = committer
        self.resolver = resolver
        self.mirror = mirror
        self.databases = databases
        self.run_log = run_log or RunLog()
        self.exclude = build_exclude_patterns(config.exclude)

    def _database_for(self, site: SiteSpec) -> DatabaseAdapter:
        try:
            return self.databases[site.provider]
        except KeyError:
            raise ConfigurationError(
                f"No database backend for provider '{site.provider}' (site {site.label})"
            ) from None

    # ------------------------------------------------------------------
    # Backup
    # ------------------------------------------------------------------

    async def backup_database(self, site: SiteSpec) -> str:
        """Dump the site's database into its dump artifact."""
        database = self._database_for(site)
        await database.dump(
            site.db_name, site.db_user, site.db_password, self.config.dump_path(site)
        )
        return f"Database backup completed for {site.label}"

    async def backup_files(self, site: SiteSpec, results: list[StepResult]) -> str:
        """Snapshot the site's file tree into its repository.

        Incomplete staging is recorded in ``results`` as its own failed step;
        the commit still goes ahead with whatever did stage.
        """
        repo = self.config.repository_path(site)
        await self.repository.ensure_repository(repo)
        await self.mirror.mirror(
            self.config.source_path(site),
            repo,
            self.exclude,
            delete_extraneous=self.config.capture_deletions,
        )

        staging = await self.committer.stage_all(repo)
        if not staging.complete:
            message = (
                f"Staging incomplete for {site.label}: {len(staging.failed_files)} "
                f"of {staging.total_files} files could not be staged"
            )
            self.run_log.error(message)
            results.append(
                StepResult(site=site.label, step="stage", success=False, error=message)
            )

        outcome = await self.committer.commit_if_changed(repo, backup_message())
        if outcome is CommitOutcome.NOOP:
            return f"File backup completed for {site.label} (no file changes)"
        return f"File backup completed for {site.label}"

    async def run_backup(
        self,
        target: str | None = None,
        policy: StepPolicy | None = None,
    ) -> BackupRunResult:
        """Back up every site, or only ``target``.

        Raises:
            ConfigurationError: If ``target`` names no configured site or the
                backup root cannot be created.
        """
        policy = policy or ContinueOnError()
        sites = [self.config.get_site(target)] if target else list(self.config.sites)

        try:
            self.config.backup_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot create backup root {self.config.backup_root}: {e}"
            ) from e

        self.run_log.start("Backup")
        result = BackupRunResult()

        for site in sites:
            self.run_log.section(f"Processing '{site.label}'")
            extra: list[StepResult] = []
            steps: list[Step] = [
                ("Database backup", lambda site=site: self.backup_database(site)),
                ("File backup", lambda site=site: self.backup_files(site, extra)),
            ]
            result.sites.append(site.label)
            result.steps.extend(await policy.run(site.label, steps, self.run_log))
            result.steps.extend(extra)

        if result.success:
            self.run_log.entry("Backup process completed")
        else:
            self.run_log.entry(f"Backup process completed with {len(result.failures)} failure(s)")
        return result

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------

    def plan_restore(self, label: str, reference: str | None = None) -> RestorePlan:
        """Describe a restore without touching anything.

        Raises:
            ConfigurationError: If ``label`` names no configured site.
        """
        site = self.config.get_site(label)
        return RestorePlan(
            site=site.label,
            target=self.config.source_path(site),
            repository=self.config.repository_path(site),
            reference=reference or None,
            db_name=site.db_name,
        )

    async def run_restore(
        self,
        label: str,
        reference: str | None,
        confirm: Callable[[RestorePlan], bool],
        policy: StepPolicy | None = None,
    ) -> RestoreRunResult:
        """Restore one site's files and database to a historical snapshot.

        ``confirm`` is asked before anything is changed; declining returns a
        cancelled result with no side effects.  A database failure after a
        successful file restore is not rolled back.

        Raises:
            ConfigurationError: If ``label`` names no configured site.
        """
        policy = policy or AbortOnFirstFailure()
        site = self.config.get_site(label)
        plan = self.plan_restore(label, reference)

        if not confirm(plan):
            logger.info(f"Restore of {label} cancelled by user")
            return RestoreRunResult(site=label, reference=reference, cancelled=True)

        self.run_log.start(
            "Restore",
            site=site.label,
            path=str(plan.target),
            commit=reference or "latest",
            db=site.db_name,
        )
        resolved: dict[str, str] = {}

        async def _resolve() -> str:
            resolved["reference"] = await self.resolver.resolve_reference(plan.repository, reference)
            return f"Resolved {reference or 'latest'} to commit {resolved['reference']}"

        async def _restore_files() -> str:
            await self.resolver.materialize(
                plan.repository, resolved["reference"], plan.target, self.exclude
            )
            return f"File restore completed for {site.label}"

        async def _restore_database() -> str:
            await self._database_for(site).restore(
                site.db_name, site.db_user, site.db_password, self.config.dump_path(site)
            )
            return f"Database restore completed for {site.label}"

        steps: list[Step] = [
            ("Resolve reference", _resolve),
            ("File restore", _restore_files),
            ("Database restore", _restore_database),
        ]
        results = await policy.run(site.label, steps, self.run_log)
        run = RestoreRunResult(
            site=site.label, reference=resolved.get("reference"), steps=results
        )

        files_done = any(r.step == "File restore" and r.success for r in results)
        if run.success:
            self.run_log.entry(f"Restore process completed successfully for {site.label}")
        elif files_done:
            self.run_log.error(
                f"Files for {site.label} were already restored to commit "
                f"{run.reference}; they have not been rolled back"
            )
        return run

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def list_backups(self, label: str) -> list[CommitInfo]:
        """History of a site's snapshot repository, most recent first.

        Raises:
            ConfigurationError: If ``label`` names no configured site.
            RestoreFileError: If the site has no readable repository.
        """
        site = self.config.get_site(label)
        return await self.resolver.list_commits(self.config.repository_path(site))

    def list_sites(self) -> list[SiteSpec]:
        """Configured sites in registry order."""
        return list(self.config.sites)
