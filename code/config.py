# config.py
"""
Configuration centralisée des simulations de routage opportuniste.

Le dictionnaire CONFIG contient une section par espace de noms (à la manière
des fichiers de paramètres du simulateur ONE). La classe Settings y donne un
accès typé, avec valeurs par défaut, et permet de superposer un fichier JSON
de surcharges.
"""
import copy
import json
import os

# Configuration par défaut pour tout le projet
CONFIG = {
    'Scenario': {
        'nrofHosts': 20,
        'endTime': 43200,          # Durée simulée (secondes)
        'updateInterval': 1.0,     # Pas de temps du moteur (secondes)
        'seed': 42,                # Graine de tous les générateurs aléatoires
        'strictChecks': False,     # True : violations d'invariants bruyantes (tests, développement)
        'worldSize': [1000, 1000],
    },
    'Group': {
        'router': 'ProphetRouter',
        'bufferSize': 5_000_000,   # Octets
        'msgTtl': 300,             # Minutes
        'transmitSpeed': 250_000,  # Octets par seconde
        'transmitRange': 50,       # Mètres
        'sendQueue': 'fifo',       # 'fifo' ou 'random'
        'speed': [0.5, 1.5],       # Vitesse de la marche aléatoire (m/s)
    },
    'ProphetRouter': {
        'secondsInTimeUnit': 30,
        'beta': 0.25,
        'gamma': 0.98,
    },
    'SprayAndWaitRouter': {
        'nrofCopies': 8,
        'binaryMode': True,
    },
    'LucidRouter': {
        'localityRange': 200.0,
        'maxHopCount': 5,
    },
    'SeerRouter': {
        'initialTemperature': 15000.0,
        'coolingCoefficient': 0.95,
        'boltzmannConstant': 1.0,
    },
    'Events': {
        'interval': [25, 35],      # Secondes entre deux créations de messages
        'size': [500_000, 1_000_000],
        'prefix': 'M',
    },
    'Output': {
        'outdir': '../data_logs',
    },
}

# Chemins et constantes
OUTDIR = CONFIG['Output']['outdir']

_MISSING = object()


class SettingsError(KeyError):
    """Paramètre absent ou invalide."""

    def __str__(self):
        return str(self.args[0]) if self.args else ''


def merge_config(base: dict, overrides: dict) -> dict:
    """
    Fusionne récursivement des surcharges dans une copie de la configuration.

    Args:
        base (dict): Configuration de départ (non modifiée)
        overrides (dict): Valeurs à superposer, même structure que CONFIG

    Returns:
        dict: Nouvelle configuration fusionnée
    """
    merged = copy.deepcopy(base)
    for namespace, values in (overrides or {}).items():
        if isinstance(values, dict) and isinstance(merged.get(namespace), dict):
            merged[namespace].update(values)
        else:
            merged[namespace] = copy.deepcopy(values)
    return merged


class Settings:
    """
    Accès typé aux paramètres d'une simulation.

    Les paramètres sont résolus une seule fois au démarrage d'une exécution,
    puis l'objet est partagé par référence entre tous les routeurs.
    """

    def __init__(self, config: dict = None, overrides: dict = None):
        self._config = merge_config(CONFIG if config is None else config, overrides)

    def __str__(self):
        return f"Settings({', '.join(sorted(self._config))})"

    def contains(self, namespace: str, key: str) -> bool:
        return key in self._config.get(namespace, {})

    def get(self, namespace: str, key: str, default=_MISSING):
        section = self._config.get(namespace, {})
        if key in section:
            return section[key]
        if default is _MISSING:
            raise SettingsError(f"Paramètre manquant: {namespace}.{key}")
        return default

    def get_int(self, namespace: str, key: str, default=_MISSING) -> int:
        value = self.get(namespace, key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            raise SettingsError(f"{namespace}.{key} doit être un entier (reçu {value!r})")

    def get_float(self, namespace: str, key: str, default=_MISSING) -> float:
        value = self.get(namespace, key, default)
        try:
            return float(value)
        except (TypeError, ValueError):
            raise SettingsError(f"{namespace}.{key} doit être un réel (reçu {value!r})")

    def get_bool(self, namespace: str, key: str, default=_MISSING) -> bool:
        value = self.get(namespace, key, default)
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ('true', '1', 'yes'):
                return True
            if lowered in ('false', '0', 'no'):
                return False
            raise SettingsError(f"{namespace}.{key} doit être un booléen (reçu {value!r})")
        return bool(value)

    def get_str(self, namespace: str, key: str, default=_MISSING) -> str:
        return str(self.get(namespace, key, default))

    def get_range(self, namespace: str, key: str, default=_MISSING) -> tuple:
        """Retourne un couple (min, max) à partir d'une liste de deux valeurs."""
        value = self.get(namespace, key, default)
        if isinstance(value, (int, float)):
            return (value, value)
        if len(value) != 2 or value[0] > value[1]:
            raise SettingsError(f"{namespace}.{key} doit être un intervalle [min, max] (reçu {value!r})")
        return (value[0], value[1])

    def with_overrides(self, overrides: dict) -> 'Settings':
        """Retourne une copie des paramètres avec des surcharges appliquées."""
        return Settings(self._config, overrides)


def load_settings(path: str = None, overrides: dict = None) -> Settings:
    """
    Charge les paramètres par défaut, un éventuel fichier JSON puis les surcharges.

    Args:
        path (str): Fichier JSON de surcharges (optionnel)
        overrides (dict): Surcharges supplémentaires (prioritaires sur le fichier)

    Returns:
        Settings: Paramètres prêts à l'emploi
    """
    file_overrides = {}
    if path:
        if not os.path.exists(path):
            raise SettingsError(f"Fichier de configuration introuvable: {path}")
        with open(path, 'r', encoding='utf-8') as f:
            try:
                file_overrides = json.load(f)
            except json.JSONDecodeError as e:
                raise SettingsError(f"Fichier de configuration invalide ({path}): {e}")
    return Settings(merge_config(CONFIG, file_overrides), overrides)
