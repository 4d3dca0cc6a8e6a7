from .compendium_store import YamlCompendiumRepository, load_packs_from_yaml
from .settings_loader import TokenVariantsSettings, load_settings_from_yaml

__all__ = [
    "YamlCompendiumRepository",
    "load_packs_from_yaml",
    "TokenVariantsSettings",
    "load_settings_from_yaml",
]
