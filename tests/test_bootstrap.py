"""Tests for the bootstrap pipeline, its steps and pacman.conf probing."""

from novarch.lib.pacman_conf import append_section, has_section
from novarch.lib.pkg import PackageManager
from novarch.pipeline import BootstrapContext, run_pipeline
from novarch.settings import Settings
from novarch.steps import (
    AurHelperStep,
    ChaoticAurStep,
    EnableMultilibStep,
    RefreshMirrorsStep,
    SystemUpgradeStep,
)
from novarch.steps.step_20_chaotic_aur import CHAOTIC_KEY_ID

from .conftest import RecordingRunner

PACMAN_CONF = """\
[options]
HoldPkg     = pacman glibc

[core]
Include = /etc/pacman.d/mirrorlist

#[multilib]
#Include = /etc/pacman.d/mirrorlist
"""


def _ctx(tmp_path, conf_text=PACMAN_CONF, probe_results=None, settings=None):
    conf = tmp_path / "pacman.conf"
    conf.write_text(conf_text, encoding="utf-8")
    runner = RecordingRunner(probe_results=probe_results)
    pm = PackageManager(runner, aur_helper="paru")
    ctx = BootstrapContext(
        runner=runner,
        pm=pm,
        settings=settings or Settings(),
        pacman_conf=str(conf),
        mirrorlist="/etc/pacman.d/mirrorlist",
    )
    return ctx, runner


def test_has_section_ignores_commented_marker(tmp_path):
    conf = tmp_path / "pacman.conf"
    conf.write_text(PACMAN_CONF, encoding="utf-8")
    assert has_section(str(conf), "core")
    assert not has_section(str(conf), "multilib")
    assert not has_section(str(tmp_path / "missing.conf"), "core")


def test_append_section_pipes_through_tee(tmp_path):
    runner = RecordingRunner()
    append_section(runner, "/etc/pacman.conf", "multilib", "/etc/pacman.d/mirrorlist")
    (run,) = runner.runs
    assert run["argv"] == ["tee", "-a", "/etc/pacman.conf"]
    assert run["sudo"]
    assert "[multilib]\nInclude = /etc/pacman.d/mirrorlist\n" in run["input_text"]


def test_multilib_step_runs_when_missing_and_skips_when_present(tmp_path):
    ctx, runner = _ctx(tmp_path)
    result = run_pipeline(ctx=ctx, steps=[EnableMultilibStep()])
    assert result.ran_steps == ["10_enable_multilib"]
    assert runner.argvs() == [["tee", "-a", ctx.pacman_conf]]

    ctx, runner = _ctx(tmp_path, conf_text=PACMAN_CONF + "\n[multilib]\nInclude = /etc/pacman.d/mirrorlist\n")
    result = run_pipeline(ctx=ctx, steps=[EnableMultilibStep()])
    assert result.skipped_steps == ["10_enable_multilib"]
    assert runner.runs == []


def test_chaotic_aur_step_sequence(tmp_path):
    ctx, runner = _ctx(tmp_path)
    run_pipeline(ctx=ctx, steps=[ChaoticAurStep()])

    argvs = runner.argvs()
    assert argvs[0] == ["pacman", "-Syu"]
    assert ["pacman-key", "--init"] in argvs
    assert ["pacman-key", "--lsign-key", CHAOTIC_KEY_ID] in argvs
    recv = argvs.index(["pacman-key", "--recv-key", CHAOTIC_KEY_ID, "--keyserver", "keyserver.ubuntu.com"])
    lsign = argvs.index(["pacman-key", "--lsign-key", CHAOTIC_KEY_ID])
    assert recv < lsign
    tee = argvs.index(["tee", "-a", ctx.pacman_conf])
    assert argvs[tee - 1][:3] == ["pacman", "-U", "--noconfirm"]
    assert argvs[-1] == ["pacman", "-Syu", "--noconfirm"]
    assert all(r["sudo"] for r in runner.runs)


def test_chaotic_aur_step_skipped_when_configured(tmp_path):
    ctx, runner = _ctx(tmp_path, conf_text=PACMAN_CONF + "\n[chaotic-aur]\nInclude = /etc/pacman.d/chaotic-mirrorlist\n")
    result = run_pipeline(ctx=ctx, steps=[ChaoticAurStep()])
    assert result.skipped_steps == ["20_chaotic_aur"]
    assert runner.runs == []


def test_refresh_mirrors_installs_reflector_first(tmp_path):
    settings = Settings(raw={"mirrors": {"latest": 5, "sort": "age"}})
    ctx, runner = _ctx(
        tmp_path,
        probe_results={("pacman", "-Qi", "reflector"): (1, "")},
        settings=settings,
    )
    run_pipeline(ctx=ctx, steps=[RefreshMirrorsStep()])
    assert runner.argvs() == [
        ["pacman", "-S", "--noconfirm", "reflector"],
        [
            "reflector",
            "--latest",
            "5",
            "--protocol",
            "https",
            "--sort",
            "age",
            "--save",
            "/etc/pacman.d/mirrorlist",
        ],
    ]


def test_aur_helper_step_is_idempotent(tmp_path):
    ctx, runner = _ctx(tmp_path, probe_results={("pacman", "-Qi", "paru"): (0, "")})
    result = run_pipeline(ctx=ctx, steps=[AurHelperStep()])
    assert result.skipped_steps == ["40_aur_helper"]
    assert runner.runs == []

    ctx, runner = _ctx(tmp_path, probe_results={("pacman", "-Qi", "paru"): (1, "")})
    result = run_pipeline(ctx=ctx, steps=[AurHelperStep()])
    assert result.ran_steps == ["40_aur_helper"]
    assert runner.argvs() == [["pacman", "-S", "--noconfirm", "paru"]]


def test_pipeline_runs_in_order(tmp_path):
    ctx, runner = _ctx(tmp_path, probe_results={("pacman", "-Qi", "paru"): (0, ""), ("pacman", "-Qi", "reflector"): (0, "")})
    result = run_pipeline(
        ctx=ctx,
        steps=[EnableMultilibStep(), RefreshMirrorsStep(), AurHelperStep(), SystemUpgradeStep()],
    )
    assert result.ran_steps == ["10_enable_multilib", "30_refresh_mirrors", "50_system_upgrade"]
    assert result.skipped_steps == ["40_aur_helper"]
    assert runner.argvs()[-1] == ["paru", "-Syu", "--noconfirm"]
