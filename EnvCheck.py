"""Startup check for optional upstream credentials.

Missing keys are not fatal; the features they power just run degraded.
"""

import logging
import os
from dataclasses import dataclass
from typing import List, Mapping, Optional

from NotificationCenter import Notify, Severity

logger = logging.getLogger(__name__)

PLACEHOLDER_VALUE = "your_key_here"
NOTICE_DURATION_MS = 6000


@dataclass(frozen=True)
class OptionalKey:
    key: str
    label: str
    features: str


OPTIONAL_KEYS = [
    OptionalKey("GROQ_API_KEY", "Groq", "AI Insights"),
    OptionalKey("OPENROUTER_API_KEY", "OpenRouter", "AI Synthesis"),
    OptionalKey("FINNHUB_API_KEY", "Finnhub", "Markets, Commodities, Heatmap"),
    OptionalKey("CLOUDFLARE_API_TOKEN", "Cloudflare", "Internet Outages"),
]


def is_configured(value: Optional[str]) -> bool:
    return bool(value and value.strip() and value != PLACEHOLDER_VALUE)


def check_environment(notify: Optional[Notify] = None, env: Optional[Mapping[str, str]] = None) -> List[str]:
    """Log every missing optional key and return their labels.

    Sends one summary notice only when some, but not all, keys are missing.
    Nothing configured at all is a fresh install and is expected.
    """
    if env is None:
        env = os.environ

    missing = []
    for check in OPTIONAL_KEYS:
        if not is_configured(env.get(check.key)):
            missing.append(check.label)
            logger.info(
                "[ENV] %s (%s) not configured - %s may be limited",
                check.label, check.key, check.features,
            )

    if notify is not None and 0 < len(missing) < len(OPTIONAL_KEYS):
        plural = "s" if len(missing) > 1 else ""
        notify(
            f"{', '.join(missing)} API key{plural} not configured - some features may be limited",
            Severity.INFO,
            NOTICE_DURATION_MS,
            True,
        )
    return missing
