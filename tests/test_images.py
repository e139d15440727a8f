"""Tests for the container runtime boundary and image provisioning."""

import subprocess

import pytest

from langbox.core.exceptions import RuntimeUnavailableError
from langbox.sandbox.images import ImageProvisioner
from langbox.sandbox.runtime import ContainerRuntime


class _FakeRun:
    """Scripted replacement for subprocess.run keyed on the CLI sub-command."""

    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    def __call__(self, cmd, **kwargs):
        self.calls.append(cmd)
        response = self.responses[cmd[1]]
        if isinstance(response, BaseException):
            raise response
        returncode, stdout, stderr = response
        return subprocess.CompletedProcess(cmd, returncode, stdout, stderr)


def _patch_run(monkeypatch, responses) -> _FakeRun:
    fake = _FakeRun(responses)
    monkeypatch.setattr("langbox.sandbox.runtime.subprocess.run", fake)
    return fake


def test_check_health_reports_server_version(monkeypatch):
    _patch_run(monkeypatch, {"version": (0, "24.0.7\n", "")})
    healthy, detail = ContainerRuntime().check_health()
    assert healthy is True
    assert "24.0.7" in detail


def test_check_health_daemon_down(monkeypatch):
    _patch_run(monkeypatch, {"version": (1, "", "Cannot connect to the Docker daemon")})
    healthy, detail = ContainerRuntime().check_health()
    assert healthy is False
    assert "Cannot connect" in detail


def test_check_health_cli_missing(monkeypatch):
    _patch_run(monkeypatch, {"version": FileNotFoundError("docker")})
    assert ContainerRuntime().check_health() == (False, "docker CLI not found")


def test_ensure_skips_pull_when_cached(monkeypatch):
    fake = _patch_run(monkeypatch, {"images": (0, "python:3.12-slim\ngolang:latest\n", "")})
    pulled = ImageProvisioner(ContainerRuntime()).ensure("golang:latest")
    assert pulled is False
    assert [cmd[1] for cmd in fake.calls] == ["images"]


def test_ensure_pulls_missing_image(monkeypatch):
    fake = _patch_run(
        monkeypatch,
        {"images": (0, "python:3.12-slim\n", ""), "pull": (0, "Status: Downloaded\n", "")},
    )
    pulled = ImageProvisioner(ContainerRuntime()).ensure("golang:latest")
    assert pulled is True
    assert fake.calls[-1] == ["docker", "pull", "golang:latest"]


def test_ensure_requires_exact_reference(monkeypatch):
    fake = _patch_run(
        monkeypatch,
        {"images": (0, "golang:1.22\n", ""), "pull": (0, "", "")},
    )
    assert ImageProvisioner(ContainerRuntime()).ensure("golang:latest") is True
    assert fake.calls[-1][1] == "pull"


def test_ensure_fails_when_images_cannot_be_listed(monkeypatch):
    _patch_run(monkeypatch, {"images": (1, "", "daemon not running")})
    with pytest.raises(RuntimeUnavailableError, match="daemon not running"):
        ImageProvisioner(ContainerRuntime()).ensure("golang:latest")


def test_ensure_fails_when_pull_fails(monkeypatch):
    _patch_run(
        monkeypatch,
        {"images": (0, "", ""), "pull": (1, "", "manifest unknown")},
    )
    with pytest.raises(RuntimeUnavailableError, match="manifest unknown") as excinfo:
        ImageProvisioner(ContainerRuntime()).ensure("golang:nope")
    assert excinfo.value.context["image"] == "golang:nope"


def test_runtime_cli_missing_is_unavailable(monkeypatch):
    _patch_run(monkeypatch, {"images": FileNotFoundError("podman")})
    with pytest.raises(RuntimeUnavailableError, match="podman CLI not found"):
        ContainerRuntime("podman").list_images()


def test_pull_timeout_is_unavailable(monkeypatch):
    _patch_run(
        monkeypatch,
        {"images": (0, "", ""), "pull": subprocess.TimeoutExpired(["docker", "pull"], 1)},
    )
    with pytest.raises(RuntimeUnavailableError, match="timed out"):
        ImageProvisioner(ContainerRuntime(pull_timeout_seconds=1)).ensure("golang:latest")


def test_kill_container(monkeypatch):
    fake = _patch_run(monkeypatch, {"kill": (0, "langbox-go-1\n", "")})
    assert ContainerRuntime().kill_container("langbox-go-1") is True
    assert fake.calls == [["docker", "kill", "langbox-go-1"]]


def test_list_images_includes_digest_references(monkeypatch):
    fake = _patch_run(
        monkeypatch,
        {
            "images": (
                0,
                "python:3.12-slim\tpython@sha256:aaa\n"
                "python:<none>\tpython@sha256:bbb\n"
                "golang:latest\tgolang@<none>\n",
                "",
            )
        },
    )
    images = ContainerRuntime().list_images()
    assert images == {
        "python:3.12-slim",
        "python@sha256:aaa",
        "python@sha256:bbb",
        "golang:latest",
    }
    assert "--digests" in fake.calls[0]


def test_ensure_skips_pull_for_cached_digest(monkeypatch):
    fake = _patch_run(monkeypatch, {"images": (0, "python:<none>\tpython@sha256:bbb\n", "")})
    assert ImageProvisioner(ContainerRuntime()).ensure("python@sha256:bbb") is False
    assert [cmd[1] for cmd in fake.calls] == ["images"]


def test_runtime_that_cannot_execute_is_unavailable(tmp_path):
    runtime = ContainerRuntime(str(tmp_path))
    healthy, detail = runtime.check_health()
    assert healthy is False
    assert "could not be started" in detail
    with pytest.raises(RuntimeUnavailableError, match="could not be started"):
        runtime.list_images()
