"""
Provisioning descriptor.

Declares the native packages a pipeline needs in its execution environment
and the environment bindings derived from them (for example the LLVM
development prefix a Rust build script looks for). Installing the packages
is somebody else's job (nix-shell, a CI setup action); this module only
states what must be there, checks that it is, and computes the bindings.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from buildgate.catalogue import LLVM_PREFIX_BINDING
from buildgate.error_codes import ErrorCode
from buildgate.errors import ConfigurationError, InfrastructureFailure

logger = logging.getLogger(__name__)

QUERY_TIMEOUT = 30


@dataclass(frozen=True)
class Package:
    """
    A native package that must be present.

    Attributes:
        name: Package name, used in messages
        executable: Program that must be on PATH when the package is installed
        pkg_config: pkg-config module that must exist when the package is installed
        version: Prefix that ``<executable> --version`` must print (e.g. "14.")
    """

    name: str
    executable: str | None = None
    pkg_config: str | None = None
    version: str | None = None

    @classmethod
    def from_config(cls, data: str | Mapping[str, Any]) -> Package:
        if isinstance(data, str):
            return cls(name=data, executable=data)
        return cls(
            name=str(data["name"]),
            executable=data.get("executable"),
            pkg_config=data.get("pkg_config"),
            version=data.get("version"),
        )

    def is_present(self, environment: Mapping[str, str]) -> bool:
        path = environment.get("PATH", "")
        if self.executable:
            found = shutil.which(self.executable, path=path)
            if found is None:
                return False
            if self.version and not _version_matches(found, self.version, environment):
                return False
        if self.pkg_config:
            return _pkg_config_exists(self.pkg_config, environment)
        return True


@dataclass(frozen=True)
class Binding:
    """
    An environment variable the provisioning layer supplies.

    The value is either a literal or the trimmed stdout of a query command
    (``llvm-config --prefix``). A value already present in the environment
    always wins.
    """

    name: str
    value: str | None = None
    command: tuple[str, ...] = ()

    @classmethod
    def from_config(cls, name: str, data: str | Mapping[str, Any]) -> Binding:
        if isinstance(data, str):
            return cls(name=name, value=data)
        command = data.get("from_command") or ()
        if isinstance(command, str):
            command = shlex.split(command)
        if not command and data.get("value") is None:
            raise ConfigurationError(f"Binding {name} needs either 'value' or 'from_command'")
        return cls(name=name, value=data.get("value"), command=tuple(command))

    def resolve(self, environment: Mapping[str, str]) -> str | None:
        if environment.get(self.name):
            return environment[self.name]
        if self.value is not None:
            return self.value
        return _query(self.command, environment)


@dataclass(frozen=True)
class ProvisioningDescriptor:
    """Packages to check and bindings to supply before step 1 begins."""

    packages: tuple[Package, ...] = ()
    bindings: tuple[Binding, ...] = ()

    @classmethod
    def from_config(cls, data: Mapping[str, Any] | None) -> ProvisioningDescriptor:
        if not data:
            return cls()
        packages = tuple(Package.from_config(p) for p in data.get("packages") or ())
        bindings = tuple(
            Binding.from_config(name, value) for name, value in (data.get("env") or {}).items()
        )
        return cls(packages=packages, bindings=bindings)

    def resolve_bindings(self, environment: Mapping[str, str]) -> dict[str, str]:
        """
        Compute the declared bindings.

        Bindings that cannot be resolved are left out; steps that require
        them then fail with MISSING_BINDING instead of running.
        """
        resolved: dict[str, str] = {}
        for binding in self.bindings:
            value = binding.resolve(environment)
            if value:
                resolved[binding.name] = value
            else:
                logger.warning("Could not resolve environment binding %s", binding.name)
        return resolved

    def environment(self, base: Mapping[str, str]) -> dict[str, str]:
        """The base environment with the declared bindings layered on top."""
        env = dict(base)
        env.update(self.resolve_bindings(base))
        return env

    def missing_packages(self, environment: Mapping[str, str]) -> list[str]:
        return [p.name for p in self.packages if not p.is_present(environment)]

    def verify(self, environment: Mapping[str, str]) -> None:
        """
        Check that every declared package is present.

        Raises:
            InfrastructureFailure: Naming every missing package
        """
        missing = self.missing_packages(environment)
        if missing:
            raise InfrastructureFailure(
                f"Toolchain not provisioned, missing package(s): {', '.join(missing)}",
                error_code=ErrorCode.TOOLCHAIN_MISSING,
                step_name="provision",
            )
        logger.info("Provisioning verified: %d package(s) present", len(self.packages))


def default_descriptor() -> ProvisioningDescriptor:
    """pkg-config, OpenSSL, GCC and LLVM 14 with its development prefix bound."""
    return ProvisioningDescriptor(
        packages=(
            Package("pkg-config", executable="pkg-config"),
            Package("openssl", pkg_config="openssl"),
            Package("gcc", executable="gcc"),
            Package("llvm-14", executable="llvm-config", version="14."),
        ),
        bindings=(Binding(LLVM_PREFIX_BINDING, command=("llvm-config", "--prefix")),),
    )


def _query(command: Sequence[str], environment: Mapping[str, str]) -> str | None:
    if not command:
        return None
    try:
        completed = subprocess.run(
            list(command),
            env=dict(environment),
            capture_output=True,
            text=True,
            timeout=QUERY_TIMEOUT,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("Query %s failed: %s", " ".join(command), e)
        return None
    if completed.returncode != 0:
        return None
    return completed.stdout.strip() or None


def _pkg_config_exists(module: str, environment: Mapping[str, str]) -> bool:
    try:
        completed = subprocess.run(
            ["pkg-config", "--exists", module],
            env=dict(environment),
            capture_output=True,
            timeout=QUERY_TIMEOUT,
        )
    except (OSError, subprocess.TimeoutExpired):
        return False
    return completed.returncode == 0


def _version_matches(executable: str, prefix: str, environment: Mapping[str, str]) -> bool:
    reported = _query((executable, "--version"), environment)
    if reported is None or not reported.startswith(prefix):
        logger.debug("%s reports version %r, need %s*", executable, reported, prefix)
        return False
    return True
