"""Library for managing store releases with the helm package manager.

Every store is a release of the `universal-store` chart named after the store,
installed into a namespace of the same name:
```python
from storeforge.config import StoreForgeConfig
from storeforge.helm import Helm

helm = Helm(StoreForgeConfig.from_env(), tmp_dir)
result = await helm.install("shop-1", "woocommerce")
if not result.success:
    print(result.error)
for record in await helm.list():
    print(f"{record.name} {record.status}")
```
"""

import contextlib
import json
import logging
from pathlib import Path
import re
from typing import Any

import aiofiles
from aiofiles.os import remove
import yaml

from . import command
from .config import StoreForgeConfig, DEFAULT_ENGINE
from .exceptions import CommandException, HelmException, PartialTeardownError
from .kubectl import Kubectl
from .result import Result
from .store import StoreRecord, from_helm_status

__all__ = [
    "Helm",
    "normalize_timestamp",
]

_LOGGER = logging.getLogger(__name__)

# "2024-01-15 10:30:45.123456789 -0800 PST"
_HELM_TIMESTAMP = re.compile(r"^(\d{4}-\d{2}-\d{2})[ T](\d{2}:\d{2}:\d{2})")

_NOT_FOUND = "not found"


def normalize_timestamp(value: str | None) -> str:
    """Convert a helm timestamp to `YYYY-MM-DDTHH:MM:SS`.

    Sub-second precision and the timezone suffix are dropped. Values that do
    not look like a helm timestamp are returned unchanged.
    """
    if not value:
        return ""
    if match := _HELM_TIMESTAMP.match(value.strip()):
        return f"{match.group(1)}T{match.group(2)}"
    return value


class Helm:
    """Install, uninstall and list store releases."""

    def __init__(
        self,
        config: StoreForgeConfig,
        tmp_dir: Path,
        kubectl: Kubectl | None = None,
    ) -> None:
        """Initialize Helm."""
        self._config = config
        self._tmp_dir = tmp_dir
        self._kubectl = kubectl or Kubectl(config.kubectl_bin, config.command_timeout)

    def _values(self, name: str, engine: str) -> dict[str, Any]:
        """Chart values for a store."""
        return {
            "store": {
                "name": name,
                "engine": engine,
            },
            "ingress": {
                "host": f"{name}.{self._config.domain_suffix}",
            },
        }

    async def install(self, name: str, engine: str) -> Result:
        """Install or upgrade the release for a store.

        The chart values file only lives for the duration of the install.
        """
        values_path = self._tmp_dir / f"{name}-values.yaml"
        try:
            async with aiofiles.open(values_path, mode="w") as values_file:
                await values_file.write(
                    yaml.dump(self._values(name, engine), sort_keys=False)
                )
        except OSError as err:
            return Result(success=False, error=f"Unable to write chart values: {err}")
        try:
            return await self._install(name, engine, values_path)
        finally:
            with contextlib.suppress(FileNotFoundError):
                await remove(values_path)

    async def _install(self, name: str, engine: str, values_path: Path) -> Result:
        timeout = self._config.install_timeout
        args = [
            self._config.helm_bin,
            "upgrade",
            "--install",
            name,
            str(self._config.chart_path),
            "--namespace",
            name,
            "--create-namespace",
            "--values",
            str(values_path),
            "--timeout",
            f"{int(timeout)}s",
        ]
        _LOGGER.info("Installing release %s (%s)", name, engine)
        try:
            out = await command.run(
                command.Command(args, exc=HelmException, timeout=timeout + 30)
            )
        except CommandException as err:
            _LOGGER.error("Helm install of %s failed: %s", name, err)
            return Result(success=False, error=str(err))
        return Result(success=True, output=out)

    async def _uninstall_release(self, name: str) -> None:
        args = [self._config.helm_bin, "uninstall", name, "--namespace", name]
        try:
            await command.run(
                command.Command(
                    args, exc=HelmException, timeout=self._config.command_timeout
                )
            )
        except HelmException as err:
            if _NOT_FOUND in (err.stderr or str(err)).lower():
                _LOGGER.debug("Release %s already removed", name)
                return
            raise

    async def uninstall(self, name: str) -> Result:
        """Remove the release and the namespace of a store.

        The namespace is deleted even if the release removal fails so that
        resources not owned by the release are reclaimed. Calling this again
        for a removed store succeeds.
        """
        errors: list[str] = []
        try:
            await self._uninstall_release(name)
        except CommandException as err:
            _LOGGER.error("Helm uninstall of %s failed: %s", name, err)
            errors.append(f"release: {err}")
        try:
            await self._kubectl.delete_namespace(name)
        except CommandException as err:
            _LOGGER.error("Namespace deletion of %s failed: %s", name, err)
            errors.append(f"namespace: {err}")
        if errors:
            return Result(success=False, error=str(PartialTeardownError(name, errors)))
        return Result(success=True)

    def _record(self, release: dict[str, Any]) -> StoreRecord:
        name = release["name"]
        url = self._config.store_url(name)
        helm_status = release.get("status") or ""
        updated = normalize_timestamp(release.get("updated"))
        return StoreRecord(
            name=name,
            namespace=release.get("namespace") or name,
            status=from_helm_status(helm_status),
            helm_status=helm_status,
            url=url,
            admin_url=f"{url}/wp-admin",
            engine=DEFAULT_ENGINE,
            created=updated,
            updated=updated,
            chart=release.get("chart") or "",
        )

    async def list(self) -> list[StoreRecord]:
        """Return the stores known to helm across all namespaces.

        Errors are logged and result in an empty list.
        """
        args = [
            self._config.helm_bin,
            "list",
            "--all-namespaces",
            "--all",
            "--output",
            "json",
        ]
        try:
            out = await command.run(
                command.Command(
                    args, exc=HelmException, timeout=self._config.command_timeout
                )
            )
            releases = json.loads(out) if out.strip() else []
            return [
                self._record(release)
                for release in releases
                if str(release.get("chart", "")).startswith(self._config.chart_name)
            ]
        except (CommandException, ValueError, KeyError, TypeError, AttributeError) as err:
            _LOGGER.warning("Unable to list helm releases: %s", err)
            return []
