# Copyright (c) 2025 LFADSPREP Development Team
# SPDX-License-Identifier: GPL-3.0-or-later

"""Run configuration and its content hashes.

Two hashes key the on-disk layout. The parameter hash covers every hashed
field and names the run output directory. The input-data hash covers only
the fields that change the prepared input files, so runs that differ only
in training hyperparameters share one set of cached inputs.

Only fields whose value differs from the class default enter a hash, so
adding a new field with a default leaves every existing hash unchanged.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .alignment.pcr import ALIGNMENT_APPROACHES, REGRESS_GLOBAL_PCS
from .settings import POSTERIOR_MEAN_KINDS
from .utils.errors import ConfigurationError
from .utils.validation import require

__all__ = ["INPUT_DATA_FIELDS", "UNHASHED_FIELDS", "RunConfig"]

# Fields that alter the prepared input files.
INPUT_DATA_FIELDS = (
    "spike_bin_ms",
    "train_to_test_ratio",
    "use_alignment_matrix",
    "use_single_dataset_alignment_matrix",
    "alignment_approach",
    "alignment_extra_args",
    "c_factors_dim",
    "c_ext_input_dim",
)
UNHASHED_FIELDS = ("name", "comment")

_HASH_LENGTH = 6


def _freeze_args(args: Any) -> Tuple[Tuple[str, Any], ...]:
    if args is None:
        return ()
    if isinstance(args, Mapping):
        items = args.items()
    else:
        items = tuple(args)
    return tuple(sorted((str(k), _plain_number(v)) for k, v in items))


def _plain_number(value: Any) -> Any:
    # 1, 1.0 and np.float64(1) must hash alike
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (int, float, np.integer, np.floating)):
        return float(value)
    return value


_CASTS = {"float": float, "int": int, "bool": bool}


def _digest(payload: Mapping[str, Any]) -> str:
    text = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha1(text.encode()).hexdigest()[:_HASH_LENGTH]


@dataclass(frozen=True)
class RunConfig:
    """Immutable set of run parameters.

    ``c_*`` fields are passed to the trainer as command-line flags with the
    prefix removed. ``name`` and ``comment`` are for humans only.
    """

    name: str = ""
    comment: str = ""

    spike_bin_ms: float = 2.0
    train_to_test_ratio: int = 4
    use_alignment_matrix: bool = False
    use_single_dataset_alignment_matrix: bool = False
    alignment_approach: str = REGRESS_GLOBAL_PCS
    alignment_extra_args: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)

    c_factors_dim: int = 50
    c_ext_input_dim: int = 0
    c_batch_size: int = 256
    c_gen_dim: int = 100
    c_ic_enc_dim: int = 64
    c_ci_enc_dim: int = 128
    c_ic_dim: int = 64
    c_co_dim: int = 4
    c_con_dim: int = 128
    c_learning_rate_init: float = 0.01
    c_learning_rate_stop: float = 1e-5
    c_learning_rate_decay_factor: float = 0.98
    c_kl_ic_weight: float = 1.0
    c_kl_co_weight: float = 1.0
    c_l2_gen_scale: float = 500.0
    c_l2_con_scale: float = 500.0
    c_kl_increase_steps: int = 900
    c_l2_increase_steps: int = 900
    c_keep_prob: float = 0.95
    c_temporal_spike_jitter_width: int = 0
    c_output_dist: str = "poisson"

    do_train_readin: bool = True
    num_samples_posterior: int = 512
    posterior_mean_kind: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "alignment_extra_args", _freeze_args(self.alignment_extra_args))
        self._coerce_declared_types()
        require(self.spike_bin_ms > 0, "spike_bin_ms must be positive", error=ConfigurationError)
        require(
            int(self.train_to_test_ratio) == self.train_to_test_ratio
            and self.train_to_test_ratio >= 1,
            "train_to_test_ratio must be a positive integer",
            error=ConfigurationError,
        )
        require(
            self.alignment_approach in ALIGNMENT_APPROACHES,
            f"alignment_approach must be one of {ALIGNMENT_APPROACHES}, "
            f"got '{self.alignment_approach}'",
            error=ConfigurationError,
        )
        require(self.c_factors_dim >= 1, "c_factors_dim must be positive", error=ConfigurationError)
        require(self.c_ext_input_dim >= 0, "c_ext_input_dim must be >= 0", error=ConfigurationError)
        require(self.c_batch_size >= 1, "c_batch_size must be positive", error=ConfigurationError)
        require(
            self.posterior_mean_kind is None or self.posterior_mean_kind in POSTERIOR_MEAN_KINDS,
            f"posterior_mean_kind must be one of {POSTERIOR_MEAN_KINDS}",
            error=ConfigurationError,
        )

    def _coerce_declared_types(self) -> None:
        for f in fields(self):
            cast = _CASTS.get(f.type if isinstance(f.type, str) else getattr(f.type, "__name__", ""))
            if cast is None:
                continue
            value = getattr(self, f.name)
            try:
                coerced = cast(value)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(f"{f.name} must be {f.type}, got {value!r}") from exc
            if cast is int and coerced != value:
                raise ConfigurationError(f"{f.name} must be an integer, got {value!r}")
            object.__setattr__(self, f.name, coerced)

    @property
    def alignment_kwargs(self) -> Dict[str, Any]:
        return dict(self.alignment_extra_args)

    # ------------------------------------------------------------------
    # hashing

    @classmethod
    def _defaults(cls) -> Dict[str, Any]:
        return {f.name: getattr(cls(), f.name) for f in fields(cls)}

    def differences(self, names: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """Hashed fields whose value differs from the class default."""
        defaults = self._defaults()
        selected = list(names) if names is not None else [f.name for f in fields(self)]
        out: Dict[str, Any] = {}
        for name in selected:
            if name in UNHASHED_FIELDS:
                continue
            value = getattr(self, name)
            if value != defaults[name]:
                out[name] = [list(pair) for pair in value] if name == "alignment_extra_args" else value
        return out

    @property
    def param_hash(self) -> str:
        return _digest(self.differences())

    @property
    def param_hash_name(self) -> str:
        return f"param_{self.param_hash}"

    @property
    def input_data_hash(self) -> str:
        return _digest(self.differences(INPUT_DATA_FIELDS))

    @property
    def input_data_hash_name(self) -> str:
        return f"data_{self.input_data_hash}"

    def short_differences(self) -> str:
        """Compact ``field=value`` summary of non-default settings."""
        diffs = self.differences()
        return " ".join(f"{k}={v}" for k, v in sorted(diffs.items()))

    # ------------------------------------------------------------------
    # trainer pass-through

    def command_line_options(self, omit: Sequence[str] = ()) -> str:
        """Serialize ``c_*`` fields as `` --name=value`` trainer flags.

        ``omit`` takes either the field name or the flag name.
        """
        skip = set(omit)
        parts: List[str] = []
        for f in fields(self):
            if not f.name.startswith("c_"):
                continue
            flag = f.name[2:]
            if f.name in skip or flag in skip:
                continue
            value = getattr(self, f.name)
            if isinstance(value, bool):
                value = "True" if value else "False"
            parts.append(f" --{flag}={value}")
        return "".join(parts)

    # ------------------------------------------------------------------
    # sweeps

    def with_updates(self, **changes: Any) -> "RunConfig":
        return replace(self, **changes)

    def generate_sweep(self, field_name: str, values: Iterable[Any]) -> List["RunConfig"]:
        """Return one copy of this configuration per value of ``field_name``."""
        known = {f.name for f in fields(self)}
        if field_name not in known:
            raise ConfigurationError(f"Unknown RunConfig field '{field_name}'")
        return [replace(self, **{field_name: value}) for value in values]

    def __str__(self) -> str:
        label = self.name or self.param_hash_name
        diffs = self.short_differences()
        return f"{label} ({self.param_hash_name}, {self.input_data_hash_name}): {diffs or 'defaults'}"
