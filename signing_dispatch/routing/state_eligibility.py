"""
State Eligibility - Single Source of Truth for Jurisdiction Rules

Answers two pure questions for a state code: is the state currently served,
and is remote online notarization (RON) permitted there. The matrix is loaded
once (from YAML) and is immutable afterwards; a reload builds a new matrix.

This module provides:
1. State code normalization (names, case, whitespace → postal code)
2. Fail-closed lookups (unknown state → inactive, RON disallowed)
3. Eligibility summaries with routing warnings
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ConfigurationError
from ..models import LoanType, SigningType
from ..utils.geographies import normalize_state_code, state_name

logger = logging.getLogger(__name__)

DEFAULT_MATRIX_PATH = Path(__file__).parent.parent / "data" / "state_eligibility.yaml"

# Loan products whose packages usually need witnesses
WITNESS_REQUIRED_LOAN_TYPES = frozenset({LoanType.REVERSE})


class WitnessRequirement(str, Enum):
    NONE = "none"
    ONE = "one"
    TWO = "two"
    VARIES_BY_DOC = "varies_by_doc"


class RonLocationRestriction(str, Enum):
    ANY = "any"
    MUST_BE_IN_STATE = "must_be_in_state"
    APPROVED_STATES = "approved_states"


class StateConfig(BaseModel):
    """Per-jurisdiction eligibility record."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    state: str
    name: Optional[str] = None
    active: bool = False
    ron_allowed: bool = False
    in_person_allowed: bool = True
    witness_requirement: WitnessRequirement = WitnessRequirement.NONE
    ron_location_restriction: RonLocationRestriction = RonLocationRestriction.ANY
    ron_approved_providers: Tuple[str, ...] = ()
    launch_phase: Optional[int] = Field(default=None, ge=1)
    special_requirements: str = ""
    notes: str = ""

    @field_validator("state", mode="before")
    @classmethod
    def normalize_code(cls, v):
        code = normalize_state_code(v)
        if not code:
            raise ValueError("state code is required")
        return code

    @property
    def display_name(self) -> str:
        return self.name or state_name(self.state) or self.state


@dataclass
class EligibilityResult:
    """What a state permits for one order."""
    state: str
    ron_eligible: bool
    in_person_eligible: bool
    reason: str
    warnings: List[str] = field(default_factory=list)


StateConfigInput = Union[StateConfig, Mapping[str, Any]]


class EligibilityMatrix:
    """
    Immutable lookup of state code → StateConfig.

    Every query normalizes its input first and never raises; unknown or
    malformed codes resolve to "ineligible" so that routing can always
    produce a decision.
    """

    def __init__(self, configs: Iterable[StateConfigInput] | Mapping[str, StateConfigInput]):
        entries: Dict[str, StateConfig] = {}

        if isinstance(configs, Mapping):
            items = []
            for code, raw in configs.items():
                if isinstance(raw, StateConfig):
                    items.append(raw)
                else:
                    items.append({"state": code, **dict(raw or {})})
        else:
            items = list(configs)

        for raw in items:
            config = self._coerce(raw)
            if config.state in entries:
                raise ConfigurationError(
                    f"Duplicate eligibility record for state {config.state}",
                    details={"state": config.state},
                )
            entries[config.state] = config

        self._configs: Mapping[str, StateConfig] = MappingProxyType(entries)

    # ==========================================================================
    # Construction
    # ==========================================================================

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "EligibilityMatrix":
        """Load a matrix from a YAML file with a top-level ``states`` mapping."""
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(
                f"State eligibility file not found: {path}",
                details={"path": str(path)},
            )

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Error parsing {path}: {e}",
                details={"path": str(path)},
            ) from e

        states = data.get("states") if isinstance(data, dict) else None
        if not isinstance(states, dict):
            raise ConfigurationError(
                f"{path} must contain a 'states' mapping",
                details={"path": str(path)},
            )

        matrix = cls(states)
        logger.info(
            f"Loaded eligibility for {len(matrix)} states "
            f"({len(matrix.active_states())} active) from {path.name}"
        )
        return matrix

    @classmethod
    def default(cls) -> "EligibilityMatrix":
        """Matrix shipped with the package."""
        return cls.from_yaml(DEFAULT_MATRIX_PATH)

    @staticmethod
    def _coerce(raw: StateConfigInput) -> StateConfig:
        if isinstance(raw, StateConfig):
            return raw
        try:
            return StateConfig.model_validate(dict(raw))
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid eligibility record {dict(raw).get('state')!r}: {e.errors()[0].get('msg')}",
                details={"record": dict(raw)},
            ) from e

    # ==========================================================================
    # Lookups
    # ==========================================================================

    @staticmethod
    def normalize_state(state: Optional[str]) -> str:
        return normalize_state_code(state)

    def get_state_config(self, state: Optional[str]) -> Optional[StateConfig]:
        return self._configs.get(normalize_state_code(state))

    def is_state_active(self, state: Optional[str]) -> bool:
        config = self.get_state_config(state)
        return bool(config and config.active)

    def is_ron_allowed(self, state: Optional[str]) -> bool:
        """True only when the state is active and permits RON."""
        config = self.get_state_config(state)
        return bool(config and config.active and config.ron_allowed)

    def is_in_person_allowed(self, state: Optional[str]) -> bool:
        config = self.get_state_config(state)
        return bool(config and config.active and config.in_person_allowed)

    def active_states(self) -> List[StateConfig]:
        return [c for c in self._configs.values() if c.active]

    def states_by_phase(self, phase: int) -> List[StateConfig]:
        return [c for c in self._configs.values() if c.active and c.launch_phase == phase]

    def __contains__(self, state: object) -> bool:
        return isinstance(state, str) and normalize_state_code(state) in self._configs

    def __len__(self) -> int:
        return len(self._configs)

    # ==========================================================================
    # Eligibility summary
    # ==========================================================================

    def check_eligibility(
        self,
        state: Optional[str],
        signing_type: SigningType,
        loan_type: Optional[LoanType] = None,
    ) -> EligibilityResult:
        """Summarize what the state permits, with warnings for the order."""
        code = normalize_state_code(state)
        config = self._configs.get(code)
        signing_type = SigningType.parse(signing_type)
        if loan_type is not None:
            loan_type = LoanType(loan_type)

        if config is None:
            logger.warning(f"No eligibility record for state {code or '<blank>'!r}; treating as inactive")
            return EligibilityResult(
                state=code,
                ron_eligible=False,
                in_person_eligible=False,
                reason=f"State {code or '<blank>'} is not in the service network",
            )

        if not config.active:
            phase = f" (phase {config.launch_phase})" if config.launch_phase else ""
            return EligibilityResult(
                state=code,
                ron_eligible=False,
                in_person_eligible=False,
                reason=f"State {code} is not yet launched{phase}",
            )

        ron_eligible = config.ron_allowed
        in_person_eligible = config.in_person_allowed
        warnings: List[str] = []

        if signing_type.requires_ron and not ron_eligible:
            warnings.append(f"{config.display_name} does not allow RON")

        if config.witness_requirement == WitnessRequirement.TWO:
            warnings.append(f"{config.display_name} requires two witnesses; arrange witnesses for the signing")
        elif config.witness_requirement == WitnessRequirement.ONE:
            warnings.append(f"{config.display_name} requires one witness")

        if signing_type.requires_ron and config.ron_location_restriction == RonLocationRestriction.MUST_BE_IN_STATE:
            warnings.append(f"RON notary must be physically located in {config.display_name}")

        if loan_type in WITNESS_REQUIRED_LOAN_TYPES:
            warnings.append(f"{loan_type.value} packages typically require witnesses")

        if config.special_requirements:
            warnings.append(config.special_requirements)

        if ron_eligible and in_person_eligible:
            reason = f"RON and in-person available in {config.display_name}"
        elif ron_eligible:
            reason = f"Only RON available in {config.display_name}"
        elif in_person_eligible:
            reason = f"In-person only in {config.display_name} (RON not authorized)"
        else:
            reason = f"No signing method currently permitted in {config.display_name}"

        return EligibilityResult(
            state=code,
            ron_eligible=ron_eligible,
            in_person_eligible=in_person_eligible,
            reason=reason,
            warnings=warnings,
        )
