"""Package signing boundary."""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from typing import Protocol

from distrograph.errors import DistroGraphError, SigningError
from distrograph.graph import RunDirective, State, network, sh_args
from distrograph.models import PackageSpec, SignerConfig

ARTIFACTS_MOUNT = "/artifacts"


class Signer(Protocol):
    def sign(self, state: State, config: SignerConfig, target_key: str) -> State:
        """Return a state holding the signed artifacts."""


@dataclass(frozen=True, slots=True)
class ImageSigner:
    """Signs artifacts in place by running the configured signer image over them."""

    def sign(self, state: State, config: SignerConfig, target_key: str) -> State:
        if not config.image:
            raise SigningError(
                "Signer config does not name a signer image.",
                context={"operation": "sign", "target": target_key},
            )
        argv = [config.cmdline, "--target", target_key, ARTIFACTS_MOUNT]
        for key, value in sorted(config.args.items()):
            argv.extend([f"--{key}", value])
        command = " ".join(shlex.quote(arg) for arg in argv)
        return (
            State.image(config.image)
            .run(
                sh_args(command),
                RunDirective(custom_name=f"Sign artifacts for {target_key}"),
                network("none"),
            )
            .add_mount(ARTIFACTS_MOUNT, state)
        )


def maybe_sign(
    state: State,
    spec: PackageSpec,
    target_key: str,
    signer: Signer | None,
) -> State:
    config = spec.get_signer(target_key)
    if config is None:
        return state
    if signer is None:
        raise SigningError(
            "Spec requests signing but no signer is configured.",
            context={"operation": "sign", "target": target_key, "spec": spec.name},
        )
    try:
        return signer.sign(state, config, target_key)
    except SigningError:
        raise
    except (DistroGraphError, OSError, ValueError) as exc:
        raise SigningError(
            "Signing failed.",
            context={"operation": "sign", "target": target_key, "spec": spec.name},
        ) from exc
