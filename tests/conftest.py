import logging
import os
import platform
import subprocess
from collections.abc import Iterator
from contextlib import contextmanager

import pytest
from docker import DockerClient
from docker.models.containers import Container

from namespaced_kv.backends.memory import MemoryBackend

logger = logging.getLogger(__name__)

logging.basicConfig(level=logging.INFO)


class FakeClock:
    """A manually advanced clock for deterministic expiry."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now: float = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_backend(clock: FakeClock) -> MemoryBackend:
    return MemoryBackend(timer=clock)


def get_docker_client() -> DockerClient:
    return DockerClient.from_env()


def docker_get(name: str) -> Container | None:
    from docker.errors import NotFound

    try:
        return get_docker_client().containers.get(name)
    except NotFound:
        logger.info(f"Container {name} not found")
        return None


def docker_stop_and_remove(name: str) -> None:
    if not (container := docker_get(name=name)):
        return

    logger.info(f"Stopping and removing container {name}")
    try:
        container.stop()
        container.remove()
    except Exception:
        logger.info(f"Container {name} failed to stop or remove")
        return

    logger.info(f"Container {name} removed")


@contextmanager
def docker_container(name: str, image: str, ports: dict[str, int]) -> Iterator[None]:
    logger.info(f"Creating container {name} with image {image} and ports {ports}")
    client = get_docker_client()
    try:
        client.images.pull(image)
        docker_stop_and_remove(name=name)
        client.containers.run(name=name, image=image, ports=ports, detach=True)
        logger.info(f"Container {name} created")
        yield
    finally:
        docker_stop_and_remove(name=name)


def detect_docker() -> bool:
    try:
        result = subprocess.run(["docker", "ps"], check=False, capture_output=True, text=True)  # noqa: S607
    except Exception:
        return False
    else:
        return result.returncode == 0


def detect_on_ci() -> bool:
    return os.getenv("CI", "false") == "true"


def should_run_docker_tests() -> bool:
    if detect_on_ci():
        return detect_docker() and platform.system() == "Linux"
    return detect_docker()


def should_skip_docker_tests() -> bool:
    return not should_run_docker_tests()
