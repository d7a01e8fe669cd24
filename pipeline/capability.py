"""
Capability tier selection.

Images and explicit deep-analysis requests go to the extended
(vision / reasoning) backend profile; everything else uses the cheaper
standard profile. A reasoning budget is attached only for explicit
deep analysis and never changes the output contract.
"""

from typing import Optional

from pipeline.schemas import CapabilityTier

DEFAULT_REASONING_BUDGET = 32768


def select_tier(image_present: bool, extended_reasoning: bool) -> CapabilityTier:
    if image_present or extended_reasoning:
        return CapabilityTier.EXTENDED
    return CapabilityTier.STANDARD


def reasoning_budget_for(extended_reasoning: bool, budget: int = DEFAULT_REASONING_BUDGET) -> Optional[int]:
    return budget if extended_reasoning else None


def model_for_tier(tier: CapabilityTier, standard_model: str, extended_model: str) -> str:
    """Map a tier onto the configured model identifier."""
    if tier is CapabilityTier.EXTENDED:
        return extended_model
    return standard_model
