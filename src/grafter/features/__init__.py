"""
Registry of installable features.
"""

from typing import Dict, List

from grafter.exceptions import GrafterError
from grafter.plan.feature import Feature


def _registry() -> Dict[str, Feature]:
    from grafter.features.supabase import feature as supabase

    return {supabase.id: supabase}


def available_features() -> List[str]:
    return sorted(_registry())


def get_feature(feature_id: str) -> Feature:
    """
    Look up a feature by id.

    Raises:
        GrafterError: for unknown ids
    """
    features = _registry()
    try:
        return features[feature_id]
    except KeyError:
        known = ", ".join(sorted(features))
        raise GrafterError(f"Unknown feature '{feature_id}' (available: {known})") from None
