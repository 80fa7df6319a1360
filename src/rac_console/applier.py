"""Compound configuration operations on the console.

Each operation is a short sequence of racadm calls whose textual results are
classified here. User provisioning is best effort: a failed field is reported
and the remaining fields are still applied. Nothing is rolled back; the
console is the source of truth and a later read-back catches drift.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from .console.client import ConsoleClient
from .console.command import Command
from .console.parser import ParsedResponse
from .errors import UnknownRoleError
from .models import Addressing, StaticAddressing, UserAccountSpec
from .utils.audit_log import ChangeTracker

logger = logging.getLogger(__name__)

ROLE_PERMISSIONS = {
    "Administrator": "0x00000fff",
    "PowerUser": "0x00000ed9",
    "GuestUser": "0x00000001",
    "None": "0x00000000",
}

USER_GROUP = "cfgUserAdmin"
SUCCESS_MARKER = "successfully"
ERROR_MARKER = "ERROR"


def enabled_bit(value) -> str:
    """Console flag for an account's enabled state."""
    return "1" if value is True or value == "Enabled" else "0"


def role_bits(role: str) -> str:
    """Privilege bit mask for ``role``."""
    if role not in ROLE_PERMISSIONS:
        raise UnknownRoleError(role, list(ROLE_PERMISSIONS))
    return ROLE_PERMISSIONS[role]


def _identity(value: str) -> str:
    return value


@dataclass
class CredentialHooks:
    """Transforms applied to secrets before they are sent.

    Both default to pass-through. Inject a decrypting function to store
    encrypted values in the inventory.
    """
    password: Callable[[str], str] = _identity
    community_string: Callable[[str], str] = _identity


@dataclass
class UserProvisionResult:
    """Per-field outcome of provisioning one user slot."""
    index: int
    steps: dict[str, bool] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return bool(self.steps) and all(self.steps.values())

    @property
    def failed_steps(self) -> list[str]:
        return [step for step, ok in self.steps.items() if not ok]


class ConfigurationApplier:
    """Applies users, root credentials and NIC addressing through a client."""

    def __init__(
        self,
        client: ConsoleClient,
        hooks: Optional[CredentialHooks] = None,
        tracker: Optional[ChangeTracker] = None,
    ):
        self.client = client
        self.hooks = hooks or CredentialHooks()
        self.tracker = tracker

    async def set_user(self, spec: UserAccountSpec) -> UserProvisionResult:
        """Write name, password, privilege and enabled flag for a user slot."""
        permission_bits = role_bits(spec.role)
        index = spec.index
        result = UserProvisionResult(index=index)

        steps = [
            ("username", "cfgUserAdminUserName", spec.name,
             f"Could not set username for user at index {index}"),
            ("password", "cfgUserAdminPassword", self.hooks.password(spec.password),
             f"Could not set password for user at index {index}"),
            ("privilege", "cfgUserAdminPrivilege", permission_bits,
             f"Could not set privileges for user at index {index}"),
            ("enabled", "cfgUserAdminEnable", enabled_bit(spec.enabled),
             f"Could not enable user at index {index}"),
        ]

        for step, config_object, value, failure in steps:
            output = await self.client.run_config_set(
                USER_GROUP, config_object, value, {"i": index}
            )
            ok = SUCCESS_MARKER in output.text
            if not ok:
                logger.error(failure)
            result.steps[step] = ok

        if self.tracker:
            self.tracker.log_change(
                operation="set_user",
                target=f"index {index}",
                parameters={
                    "name": spec.name,
                    "password": spec.password,
                    "role": spec.role,
                    "enabled": spec.enabled,
                },
                success=result.succeeded,
                error=", ".join(result.failed_steps) or None,
            )

        return result

    async def set_root_credentials(
        self,
        password: str,
        module_type: str,
        slot: str,
        snmp_string: Optional[str] = None,
    ) -> ParsedResponse:
        """Deploy root credentials (and optionally SNMP) to a module."""
        module = f"{module_type}-{slot}"
        flags = {
            "u": "root",
            "p": f"'{self.hooks.password(password)}'",
            "m": module,
        }
        if snmp_string is not None:
            community = self.hooks.community_string(snmp_string)
            flags["v"] = " ".join(["SNMPv2", community, "ro"])

        output = await self.client.run("deploy", flags, verbose=False)
        # Always logged, whatever the caller's verbosity
        logger.info(f"racadm deploy result for {module}: {output}")

        if self.tracker:
            success = ERROR_MARKER not in output.text
            self.tracker.log_change(
                operation="set_root_credentials",
                target=module,
                parameters={
                    "user": "root",
                    "password": password,
                    "snmp_string": snmp_string,
                },
                success=success,
                output=output.text,
            )
        return output

    async def set_network_interface(
        self, module_name: str, addressing: Addressing
    ) -> ParsedResponse:
        """Switch a module's NIC to DHCP or static addressing.

        The raw parsed output is returned for the caller to classify.
        """
        flags: dict[str, Optional[str]] = {"m": module_name}
        if isinstance(addressing, StaticAddressing):
            flags["s"] = " ".join([
                addressing.ip_address,
                addressing.subnet_mask,
                addressing.gateway,
            ])
        else:
            flags["d"] = None

        output = await self.client.execute(Command.build("setniccfg", flags))
        logger.info(f"racadm setniccfg result for {module_name}: {output}")

        if self.tracker:
            parameters: dict = {"mode": addressing.mode}
            if isinstance(addressing, StaticAddressing):
                parameters.update(
                    ip_address=addressing.ip_address,
                    subnet_mask=addressing.subnet_mask,
                    gateway=addressing.gateway,
                )
            self.tracker.log_change(
                operation="set_network_interface",
                target=module_name,
                parameters=parameters,
                success=ERROR_MARKER not in output.text,
                output=output.text,
            )
        return output
