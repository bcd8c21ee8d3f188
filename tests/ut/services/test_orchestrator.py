"""BuildOrchestrator 单元测试"""

from __future__ import annotations

import stat

import pytest

from pkgrecipe.core.config import Config
from pkgrecipe.core.exceptions import CompileError, DependencyFetchError, InstallError
from pkgrecipe.core.recipe import DEFAULT_METADATA
from pkgrecipe.services.orchestrator import BuildOrchestrator

from tests.helpers import FakeExecutor, default_outputs, make_release


def _orch(executor, config=None) -> BuildOrchestrator:
    return BuildOrchestrator(metadata=DEFAULT_METADATA, config=config or Config(), executor=executor)


def _mode(path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


class TestPhaseDescriptors:
    def test_declared_order(self, fake_executor) -> None:
        assert [p.name for p in _orch(fake_executor).phases()] == ["prepare", "build", "package"]

    def test_only_build_phase_has_env(self, fake_executor) -> None:
        prepare, build, package = _orch(fake_executor).phases()
        assert prepare.env == {}
        assert build.env == {"RUSTUP_TOOLCHAIN": "stable", "CARGO_TARGET_DIR": "target"}
        assert package.env == {}

    def test_default_work_dir(self, fake_executor) -> None:
        cfg = Config(src_dir="/tmp/srcroot")
        assert str(_orch(fake_executor, cfg).default_work_dir()) == "/tmp/srcroot/amethyst"


class TestRunPrepare:
    def test_fetch_command(self, fake_executor, work_dir) -> None:
        _orch(fake_executor).run_prepare(work_dir)
        call = fake_executor.calls[0]
        assert call.cmd == ["cargo", "fetch", "--locked", "--target", "x86_64-unknown-linux-gnu"]
        assert call.cwd == str(work_dir)

    def test_target_follows_carch(self, fake_executor, work_dir) -> None:
        _orch(fake_executor, Config(carch="aarch64")).run_prepare(work_dir)
        assert fake_executor.calls[0].cmd[-1] == "aarch64-unknown-linux-gnu"

    def test_failure(self, work_dir) -> None:
        fake = FakeExecutor(returncodes={"fetch": 101})
        with pytest.raises(DependencyFetchError) as exc:
            _orch(fake).run_prepare(work_dir)
        assert exc.value.returncode == 101
        assert "cargo fetch failed" in exc.value.stderr
        assert exc.value.phase == "prepare"


class TestRunBuild:
    def test_build_command(self, fake_executor, work_dir) -> None:
        _orch(fake_executor).run_build(work_dir)
        call = fake_executor.calls[0]
        assert call.cmd == ["cargo", "build", "--frozen", "--release", "--all-features"]
        assert call.env["RUSTUP_TOOLCHAIN"] == "stable"
        assert call.env["CARGO_TARGET_DIR"] == "target"

    def test_explicit_env(self, fake_executor, work_dir) -> None:
        _orch(fake_executor).run_build(work_dir, {"RUSTUP_TOOLCHAIN": "nightly"})
        assert fake_executor.calls[0].env["RUSTUP_TOOLCHAIN"] == "nightly"

    def test_failure(self, work_dir) -> None:
        fake = FakeExecutor(returncodes={"build": 101})
        with pytest.raises(CompileError) as exc:
            _orch(fake).run_build(work_dir)
        assert exc.value.returncode == 101


class TestRunPackage:
    def test_installs_only_executables(self, fake_executor, work_dir, dest_dir) -> None:
        make_release(work_dir, {"foo": 0o755, "bar.so": 0o644})
        installed = _orch(fake_executor).run_package(work_dir, dest_dir)

        bin_dir = dest_dir / "usr" / "bin"
        assert installed == [bin_dir / "foo"]
        assert sorted(p.name for p in bin_dir.iterdir()) == ["foo"]
        assert _mode(bin_dir / "foo") == 0o755

    def test_install_command(self, fake_executor, work_dir, dest_dir) -> None:
        release = make_release(work_dir, {"a": 0o755, "b": 0o700})
        _orch(fake_executor).run_package(work_dir, dest_dir)
        assert fake_executor.calls[0].cmd == [
            "install", "-Dm0755", "-t", f"{dest_dir}/usr/bin/",
            str(release / "a"), str(release / "b"),
        ]

    def test_multiple_binaries_all_installed(self, fake_executor, work_dir, dest_dir) -> None:
        make_release(work_dir, {"ame": 0o755, "ame-helper": 0o700})
        _orch(fake_executor).run_package(work_dir, dest_dir)
        bin_dir = dest_dir / "usr" / "bin"
        assert sorted(p.name for p in bin_dir.iterdir()) == ["ame", "ame-helper"]
        assert _mode(bin_dir / "ame-helper") == 0o755

    def test_subdirectories_not_installed(self, fake_executor, work_dir, dest_dir) -> None:
        default_outputs(work_dir)
        _orch(fake_executor).run_package(work_dir, dest_dir)
        assert sorted(p.name for p in (dest_dir / "usr" / "bin").iterdir()) == ["ame"]

    def test_empty_release_fails(self, fake_executor, work_dir, dest_dir) -> None:
        make_release(work_dir, {})
        with pytest.raises(InstallError):
            _orch(fake_executor).run_package(work_dir, dest_dir)
        assert fake_executor.calls == []
        assert not dest_dir.exists()

    def test_install_command_failure(self, work_dir, dest_dir) -> None:
        make_release(work_dir, {"foo": 0o755})
        cfg = Config(install_bin="false")
        with pytest.raises(InstallError) as exc:
            _orch(FakeExecutor(), cfg).run_package(work_dir, dest_dir)
        assert exc.value.returncode == 1

    def test_release_dir_follows_target_dir(self, fake_executor, work_dir, dest_dir) -> None:
        cfg = Config(build_env={"CARGO_TARGET_DIR": "out"})
        release = work_dir / "out" / "release"
        release.mkdir(parents=True)
        (release / "tool").write_text("x", encoding="utf-8")
        (release / "tool").chmod(0o755)
        _orch(fake_executor, cfg).run_package(work_dir, dest_dir)
        assert (dest_dir / "usr" / "bin" / "tool").exists()


class TestRun:
    def test_full_sequence(self, fake_executor, work_dir, dest_dir) -> None:
        report = _orch(fake_executor).run(work_dir, dest_dir)
        assert report.success is True
        assert report.exit_code == 0
        assert fake_executor.subcommands() == ["fetch", "build", "install"]
        assert [p.name for p in report.phases] == ["prepare", "build", "package"]
        assert report.installed == [str(dest_dir / "usr" / "bin" / "ame")]

    @pytest.mark.parametrize(
        ("failing", "expected_calls", "phase", "error_cls"),
        [
            ("fetch", ["fetch"], "prepare", DependencyFetchError),
            ("build", ["fetch", "build"], "build", CompileError),
        ],
    )
    def test_failure_stops_sequence(
        self, work_dir, dest_dir, failing, expected_calls, phase, error_cls,
    ) -> None:
        fake = FakeExecutor(returncodes={failing: 101}, on_build=default_outputs)
        report = _orch(fake).run(work_dir, dest_dir)
        assert fake.subcommands() == expected_calls
        assert report.success is False
        assert report.failed_phase == phase
        assert report.exit_code == 101
        assert isinstance(report.error, error_cls)
        assert report.phases[-1].name == phase
        assert not dest_dir.exists()

    def test_package_failure_when_build_produces_nothing(self, work_dir, dest_dir) -> None:
        fake = FakeExecutor(on_build=lambda wd: make_release(wd, {"lib.so": 0o644}))
        report = _orch(fake).run(work_dir, dest_dir)
        assert report.failed_phase == "package"
        assert report.exit_code == 1
        assert isinstance(report.error, InstallError)

    def test_env_overrides_only_visible_to_build(self, monkeypatch, fake_executor, work_dir, dest_dir) -> None:
        monkeypatch.delenv("RUSTUP_TOOLCHAIN", raising=False)
        monkeypatch.delenv("CARGO_TARGET_DIR", raising=False)
        _orch(fake_executor).run(work_dir, dest_dir)

        envs = {c.cmd[1] if c.cmd[0] == "cargo" else c.cmd[0]: c.env for c in fake_executor.calls}
        for key in ("RUSTUP_TOOLCHAIN", "CARGO_TARGET_DIR"):
            assert key in envs["build"]
            assert key not in envs["fetch"]
            assert key not in envs["install"]

    def test_rerun_is_idempotent(self, fake_executor, work_dir, dest_dir) -> None:
        orch = _orch(fake_executor)
        first = orch.run(work_dir, dest_dir)
        bin_dir = dest_dir / "usr" / "bin"
        snapshot = {p.name: (p.read_bytes(), _mode(p)) for p in bin_dir.iterdir()}

        second = orch.run(work_dir, dest_dir)
        assert first.success and second.success
        assert {p.name: (p.read_bytes(), _mode(p)) for p in bin_dir.iterdir()} == snapshot

    def test_defaults_from_config(self, fake_executor, tmp_path) -> None:
        cfg = Config(src_dir=str(tmp_path / "src"), pkg_dir=str(tmp_path / "pkg"))
        (tmp_path / "src" / "amethyst").mkdir(parents=True)
        report = _orch(fake_executor, cfg).run()
        assert report.work_dir == str(tmp_path / "src" / "amethyst")
        assert report.success is True
        assert (tmp_path / "pkg" / "usr" / "bin" / "ame").exists()

    def test_dry_run_executes_nothing(self, fake_executor, work_dir, dest_dir) -> None:
        report = _orch(fake_executor).run(work_dir, dest_dir, dry_run=True)
        assert fake_executor.calls == []
        assert [p.status for p in report.phases] == ["skipped"] * 3
        assert "cargo fetch --locked" in report.phases[0].detail
        assert report.phases[1].detail.startswith("CARGO_TARGET_DIR=target RUSTUP_TOOLCHAIN=stable")
        assert report.success is True


class TestRelativePaths:
    """默认配置下 src_dir / pkg_dir 都是相对于当前目录的路径"""

    def test_run_with_default_config(self, monkeypatch, fake_executor, tmp_path) -> None:
        monkeypatch.chdir(tmp_path)
        (tmp_path / "src" / "amethyst").mkdir(parents=True)
        report = _orch(fake_executor).run()
        assert report.success is True, report.error
        assert report.installed == [str(tmp_path / "pkg" / "usr" / "bin" / "ame")]
        assert (tmp_path / "pkg" / "usr" / "bin" / "ame").exists()
        assert not (tmp_path / "src" / "amethyst" / "pkg").exists()

    def test_run_package_relative_dirs(self, monkeypatch, fake_executor, tmp_path) -> None:
        monkeypatch.chdir(tmp_path)
        make_release(tmp_path / "src" / "amethyst", {"ame": 0o755})
        installed = _orch(fake_executor).run_package("src/amethyst", "pkg")
        assert installed == [tmp_path / "pkg" / "usr" / "bin" / "ame"]
        assert installed[0].exists()
