from __future__ import annotations

import threading

from .models import Manifest, ManifestHeader, PackageDescriptor


class ManifestAggregator:
    """Collect package descriptors from concurrently running cells.

    ``add`` may be called from any worker thread. Descriptors keep the order
    in which they were added.
    """

    def __init__(self, header: ManifestHeader) -> None:
        self.header = header
        self._lock = threading.Lock()
        self._packages: list[PackageDescriptor] = []
        self._new_artifacts = 0

    def add(self, descriptor: PackageDescriptor, *, created: bool = False) -> None:
        with self._lock:
            self._packages.append(descriptor)
            if created:
                self._new_artifacts += 1

    def has_new_work(self) -> bool:
        with self._lock:
            return self._new_artifacts > 0

    @property
    def new_artifact_count(self) -> int:
        with self._lock:
            return self._new_artifacts

    def descriptors(self) -> tuple[PackageDescriptor, ...]:
        with self._lock:
            return tuple(self._packages)

    def render(self) -> Manifest:
        return Manifest(header=self.header, packages=self.descriptors())
