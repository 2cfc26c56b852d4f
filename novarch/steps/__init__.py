from .step_10_enable_multilib import EnableMultilibStep
from .step_20_chaotic_aur import ChaoticAurStep
from .step_30_refresh_mirrors import RefreshMirrorsStep
from .step_40_aur_helper import AurHelperStep
from .step_50_system_upgrade import SystemUpgradeStep

__all__ = [
    "EnableMultilibStep",
    "ChaoticAurStep",
    "RefreshMirrorsStep",
    "AurHelperStep",
    "SystemUpgradeStep",
]
