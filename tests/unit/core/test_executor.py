"""Unit tests for core/executor.py.

Tests placement policy, upgrade detection and the two-pass transaction
execution, including resume after interruption.
"""

from dataclasses import replace
from unittest.mock import MagicMock, patch

import pytest
from binpkg.core.errors import (
    HashMismatchError,
    PreviewError,
    TransactionError,
    TransactionStep,
)
from binpkg.core.executor import (
    CONFIRM_PROMPT,
    PlacementStrategy,
    TransactionExecutor,
    TransactionOutcome,
    choose_placement_strategy,
    upgrade_applies,
)
from binpkg.core.registry import RegistryManager
from binpkg.core.state import PackageStateTracker
from binpkg.models.package import PackageState
from binpkg.models.registry import InstalledPackage
from binpkg.models.transaction import TransactionMode, TransactionSet
from helpers import RecordingOperator, RepoBuilder, make_entry

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def executor(
    recording_operator: RecordingOperator,
    tracker: PackageStateTracker,
    registry: RegistryManager,
) -> TransactionExecutor:
    """Executor that always gets a positive confirmation."""
    return TransactionExecutor(recording_operator, tracker, registry, confirm=lambda _: True)


def _install_configured(registry: RegistryManager, name: str, version: str) -> None:
    registry.add(InstalledPackage(name=name, version=version, state=PackageState.CONFIGURED))


# ---------------------------------------------------------------------------
# Policy functions
# ---------------------------------------------------------------------------


class TestChoosePlacementStrategy:
    """Tests for choose_placement_strategy."""

    def test_essential_overwrites(self) -> None:
        """Essential packages are overwritten in place."""
        entry = make_entry(essential=True)
        assert choose_placement_strategy(entry) is PlacementStrategy.OVERWRITE_IN_PLACE

    def test_regular_removes_first(self) -> None:
        """Other packages are removed before the new version is unpacked."""
        entry = make_entry(essential=False)
        assert choose_placement_strategy(entry) is PlacementStrategy.REMOVE_THEN_INSTALL


class TestUpgradeApplies:
    """Tests for upgrade_applies."""

    def test_not_installed(self) -> None:
        """Fresh installs are never upgrades."""
        ts = TransactionSet(entries=(), mode=TransactionMode.FLEET_UPDATE)
        assert upgrade_applies(ts, make_entry()) is False

    def test_fleet_always(self) -> None:
        """In fleet mode every installed entry is an upgrade."""
        ts = TransactionSet(entries=(), mode=TransactionMode.FLEET_UPDATE)
        entry = make_entry(version="1.0", installed_version="1.0")
        assert upgrade_applies(ts, entry) is True

    def test_single_target_version_differs(self) -> None:
        """A single-target run upgrades only when the version changes."""
        ts = TransactionSet(entries=())
        assert upgrade_applies(ts, make_entry(version="2.0", installed_version="1.0")) is True
        assert upgrade_applies(ts, make_entry(version="1.0", installed_version="1.0")) is False


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestExecuteInstall:
    """Tests for fresh installations."""

    def test_install_single_package(
        self,
        repo: RepoBuilder,
        executor: TransactionExecutor,
        recording_operator: RecordingOperator,
        tracker: PackageStateTracker,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Unpack, register as explicit, mark unpacked, then configure."""
        foo = repo.add("foo", "1.0")
        ts = TransactionSet(entries=(foo,), origin_name="foo")

        outcome = executor.execute(ts)

        assert outcome is TransactionOutcome.COMPLETED
        assert recording_operator.calls == [
            ("unpack", "foo", "1.0", False),
            ("register", "foo", "1.0", False),
            ("configure", "foo", "1.0"),
        ]
        assert tracker.get_state("foo", "1.0") is PackageState.CONFIGURED

        out = capsys.readouterr().out
        assert "Unpacking foo-1.0 (from .../foo-1.0.tar.gz) ..." in out
        assert "Configuring package foo-1.0 ..." in out

    def test_all_unpacked_before_any_configured(
        self,
        repo: RepoBuilder,
        executor: TransactionExecutor,
        recording_operator: RecordingOperator,
    ) -> None:
        """Configuration only starts once every entry is unpacked."""
        ts = TransactionSet(
            entries=(repo.add("libA", "1.0"), repo.add("app", "1.0", depends=["libA"])),
            origin_name="app",
        )

        executor.execute(ts)

        methods = recording_operator.methods()
        last_register = max(i for i, m in enumerate(methods) if m == "register")
        first_configure = methods.index("configure")
        assert last_register < first_configure
        assert [c[1] for c in recording_operator.calls if c[0] == "configure"] == ["libA", "app"]

    def test_dependency_flag_per_entry(
        self,
        repo: RepoBuilder,
        executor: TransactionExecutor,
        recording_operator: RecordingOperator,
        registry: RegistryManager,
    ) -> None:
        """Only non-origin entries are registered as dependencies."""
        ts = TransactionSet(
            entries=(repo.add("libA", "1.0"), repo.add("foo", "1.0"), repo.add("libB", "1.0")),
            origin_name="foo",
        )

        executor.execute(ts)

        registered = {c[1]: c[3] for c in recording_operator.calls if c[0] == "register"}
        assert registered == {"libA": True, "foo": False, "libB": True}
        record = registry.get("foo")
        assert record is not None and record.automatic is False


class TestExecuteUpgrade:
    """Tests for upgrades of installed packages."""

    def test_essential_upgrade_never_removes(
        self,
        repo: RepoBuilder,
        registry: RegistryManager,
        executor: TransactionExecutor,
        recording_operator: RecordingOperator,
        tracker: PackageStateTracker,
    ) -> None:
        """Essential packages are unpacked over the old version."""
        _install_configured(registry, "bar", "1.0")
        entry = repo.add("bar", "2.0", essential=True)
        ts = TransactionSet(
            entries=(replace(entry, installed_version="1.0"),),
            origin_name="bar",
            is_update=True,
        )

        executor.execute(ts)

        assert "remove" not in recording_operator.methods()
        assert recording_operator.calls[0] == ("unpack", "bar", "2.0", True)
        assert tracker.get_state("bar", "2.0") is PackageState.CONFIGURED

    def test_regular_upgrade_removes_first(
        self,
        repo: RepoBuilder,
        registry: RegistryManager,
        executor: TransactionExecutor,
        recording_operator: RecordingOperator,
    ) -> None:
        """Non-essential packages are removed before the new version is unpacked."""
        _install_configured(registry, "foo", "1.0")
        entry = repo.add("foo", "2.0")
        upgraded = replace(entry, installed_version="1.0")

        executor.execute(TransactionSet(entries=(upgraded,), origin_name="foo", is_update=True))

        assert recording_operator.calls[:2] == [
            ("remove", "foo", "1.0", True),
            ("unpack", "foo", "2.0", False),
        ]

    def test_remove_failure_stops_before_unpack(
        self,
        repo: RepoBuilder,
        registry: RegistryManager,
        tracker: PackageStateTracker,
    ) -> None:
        """A failed removal aborts with the REMOVE step and nothing is unpacked."""
        _install_configured(registry, "foo", "1.0")
        entry = repo.add("foo", "2.0")
        upgraded = replace(entry, installed_version="1.0")
        operator = RecordingOperator(registry, fail_on={("remove", "foo"): "busy"})
        executor = TransactionExecutor(operator, tracker, registry, confirm=lambda _: True)

        with pytest.raises(TransactionError) as exc_info:
            executor.execute(TransactionSet(entries=(upgraded,), origin_name="foo"))

        assert exc_info.value.step is TransactionStep.REMOVE
        assert exc_info.value.pkgver == "foo-2.0"
        assert "unpack" not in operator.methods()

    def test_already_removed_version_not_removed_again(
        self,
        repo: RepoBuilder,
        executor: TransactionExecutor,
        recording_operator: RecordingOperator,
    ) -> None:
        """If the old version is gone already, removal is skipped."""
        entry = repo.add("foo", "2.0")
        upgraded = replace(entry, installed_version="1.0")

        executor.execute(TransactionSet(entries=(upgraded,), origin_name="foo"))

        assert "remove" not in recording_operator.methods()
        assert recording_operator.methods()[0] == "unpack"


class TestExecuteResume:
    """Tests for resuming interrupted transactions."""

    def test_resume_after_unpack_failure(
        self,
        repo: RepoBuilder,
        registry: RegistryManager,
        tracker: PackageStateTracker,
    ) -> None:
        """Entries unpacked by the failed run are skipped, the rest applied once."""
        entries = tuple(repo.add(name, "1.0") for name in ("a", "b", "c", "d"))
        ts = TransactionSet(entries=entries, origin_name="d")

        failing = RecordingOperator(registry, fail_on={("unpack", "c"): "no space left"})
        with pytest.raises(TransactionError) as exc_info:
            TransactionExecutor(failing, tracker, registry, confirm=lambda _: True).execute(ts)
        assert exc_info.value.step is TransactionStep.UNPACK
        assert tracker.get_state("a") is PackageState.UNPACKED
        assert tracker.get_state("b") is PackageState.UNPACKED
        assert tracker.get_state("c") is PackageState.NOT_APPLIED

        rerun = RecordingOperator(registry)
        TransactionExecutor(rerun, tracker, registry, confirm=lambda _: True).execute(ts)

        unpacked = [c[1] for c in rerun.calls if c[0] == "unpack"]
        configured = [c[1] for c in rerun.calls if c[0] == "configure"]
        assert unpacked == ["c", "d"]
        assert configured == ["a", "b", "c", "d"]
        for name in ("a", "b", "c", "d"):
            assert tracker.get_state(name) is PackageState.CONFIGURED

    def test_resume_skips_integrity_of_unpacked(
        self,
        repo: RepoBuilder,
        registry: RegistryManager,
        executor: TransactionExecutor,
        recording_operator: RecordingOperator,
    ) -> None:
        """Artifacts of entries already unpacked are not needed any more."""
        entry = repo.add("foo", "1.0")
        registry.add(InstalledPackage(name="foo", version="1.0", state=PackageState.UNPACKED))
        entry.artifact.path.unlink()

        outcome = executor.execute(TransactionSet(entries=(entry,), origin_name="foo"))

        assert outcome is TransactionOutcome.COMPLETED
        assert recording_operator.calls == [("configure", "foo", "1.0")]

    def test_configured_entries_reconfigured(
        self,
        repo: RepoBuilder,
        registry: RegistryManager,
        executor: TransactionExecutor,
        recording_operator: RecordingOperator,
        tracker: PackageStateTracker,
    ) -> None:
        """Configure runs again for entries that are already configured."""
        entry = repo.add("foo", "1.0")
        _install_configured(registry, "foo", "1.0")

        executor.execute(TransactionSet(entries=(entry,), origin_name="foo"))

        assert recording_operator.calls == [("configure", "foo", "1.0")]
        assert tracker.get_state("foo") is PackageState.CONFIGURED

    def test_configure_failure_keeps_earlier_progress(
        self,
        repo: RepoBuilder,
        registry: RegistryManager,
        tracker: PackageStateTracker,
    ) -> None:
        """A configure failure stops the pass and keeps earlier states."""
        entries = (repo.add("a", "1.0"), repo.add("b", "1.0"), repo.add("c", "1.0"))
        operator = RecordingOperator(registry, fail_on={("configure", "b"): "script failed"})
        executor = TransactionExecutor(operator, tracker, registry, confirm=lambda _: True)

        with pytest.raises(TransactionError, match="script failed") as exc_info:
            executor.execute(TransactionSet(entries=entries, origin_name="c"))

        assert exc_info.value.step is TransactionStep.CONFIGURE
        assert tracker.get_state("a") is PackageState.CONFIGURED
        assert tracker.get_state("b") is PackageState.UNPACKED
        assert tracker.get_state("c") is PackageState.UNPACKED
        assert ("configure", "c", "1.0") not in operator.calls


class TestExecuteGuards:
    """Tests for confirmation, preview and integrity guards."""

    def test_declined_confirmation(
        self,
        repo: RepoBuilder,
        registry: RegistryManager,
        recording_operator: RecordingOperator,
        tracker: PackageStateTracker,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Declining cancels without touching anything."""
        confirm = MagicMock(return_value=False)
        executor = TransactionExecutor(recording_operator, tracker, registry, confirm=confirm)

        outcome = executor.execute(TransactionSet(entries=(repo.add("foo", "1.0"),)))

        assert outcome is TransactionOutcome.CANCELLED
        confirm.assert_called_once_with(CONFIRM_PROMPT)
        assert recording_operator.calls == []
        out = capsys.readouterr().out
        assert "Aborting!" in out
        assert "Checking binary package" not in out

    def test_force_skips_confirmation(
        self,
        repo: RepoBuilder,
        registry: RegistryManager,
        recording_operator: RecordingOperator,
        tracker: PackageStateTracker,
    ) -> None:
        """Forced transactions never ask."""
        confirm = MagicMock(return_value=False)
        executor = TransactionExecutor(recording_operator, tracker, registry, confirm=confirm)

        outcome = executor.execute(
            TransactionSet(entries=(repo.add("foo", "1.0"),), force=True)
        )

        assert outcome is TransactionOutcome.COMPLETED
        confirm.assert_not_called()

    def test_integrity_failure_mutates_nothing(
        self,
        repo: RepoBuilder,
        registry: RegistryManager,
        executor: TransactionExecutor,
        recording_operator: RecordingOperator,
    ) -> None:
        """One corrupted artifact stops the transaction before any mutation."""
        _install_configured(registry, "a", "0.9")
        a = repo.add("a", "1.0")
        b = repo.add("b", "1.0")
        b.artifact.path.write_bytes(b"corrupted")
        upgraded = replace(a, installed_version="0.9")

        with pytest.raises(HashMismatchError):
            executor.execute(TransactionSet(entries=(upgraded, b), origin_name="b"))

        assert recording_operator.calls == []

    def test_preview_failure_mutates_nothing(
        self,
        repo: RepoBuilder,
        executor: TransactionExecutor,
        recording_operator: RecordingOperator,
    ) -> None:
        """A failing preview aborts before confirmation."""
        with (
            patch(
                "binpkg.core.executor.show_transaction_preview",
                side_effect=PreviewError("bad size"),
            ),
            pytest.raises(PreviewError),
        ):
            executor.execute(TransactionSet(entries=(repo.add("foo", "1.0"),)))

        assert recording_operator.calls == []

