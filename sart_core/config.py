"""
Deployment configuration — which protocol variant and scoring revision run.

Policies are immutable bundles injected into the components; nothing here is
ambient global state, so tests can swap any of them.

Environment:
  SART_PROTOCOL          "continuous" (default) or "block"
  SART_SCORING_VERSION   registered scoring version (default: newest)
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Union

from .baseline import BaselinePolicy, DEFAULT_BASELINE_POLICY
from .circadian import CircadianBaseline, DEFAULT_CIRCADIAN
from .forecast import ForecastPolicy, DEFAULT_FORECAST_POLICY
from .protocol import ContinuousProtocol, BlockProtocol, DEFAULT_PROTOCOL, get_protocol
from .scoring import ScoringPolicy, DEFAULT_SCORING_POLICY, get_scoring_policy
from .validity import ValidityPolicy, DEFAULT_VALIDITY_POLICY


@dataclass(frozen=True)
class EngineConfig:
    protocol: Union[ContinuousProtocol, BlockProtocol] = DEFAULT_PROTOCOL
    scoring: ScoringPolicy = DEFAULT_SCORING_POLICY
    validity: ValidityPolicy = DEFAULT_VALIDITY_POLICY
    baseline: BaselinePolicy = DEFAULT_BASELINE_POLICY
    forecast: ForecastPolicy = DEFAULT_FORECAST_POLICY
    circadian: CircadianBaseline = field(default=DEFAULT_CIRCADIAN, compare=False)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        env = os.environ if environ is None else environ
        protocol_name = env.get("SART_PROTOCOL", "").strip().lower()
        version = env.get("SART_SCORING_VERSION", "").strip()
        return cls(
            protocol=get_protocol(protocol_name) if protocol_name else DEFAULT_PROTOCOL,
            scoring=get_scoring_policy(version) if version else DEFAULT_SCORING_POLICY,
        )
