# simulation/context.py
"""
Contexte partagé d'une exécution de simulation.

Tout ce qui était auparavant de l'état global (horloge, paramètres, compteurs
partagés entre instances) est regroupé ici, résolu une fois au démarrage et
passé par référence à chaque routeur. La méthode reset() remet le contexte à
zéro entre deux expériences.
"""
import logging
import random

from config import Settings

logger = logging.getLogger(__name__)


class SimClock:
    """Horloge simulée monotone (secondes)."""

    def __init__(self, start: float = 0.0):
        self.time = float(start)

    def advance(self, dt: float):
        if dt < 0:
            raise ValueError(f"L'horloge simulée ne peut pas reculer (dt={dt})")
        self.time += dt

    def set_time(self, t: float):
        if t < self.time:
            raise ValueError(f"L'horloge simulée ne peut pas reculer ({self.time} -> {t})")
        self.time = float(t)

    def reset(self):
        self.time = 0.0


class RunContext:
    """
    Paramètres, horloge, générateurs et écouteurs d'une exécution.
    """

    def __init__(self, settings: Settings = None):
        """
        Args:
            settings (Settings, optional): paramètres de l'exécution. Par défaut CONFIG.
        """
        self.settings = settings if settings is not None else Settings()
        self.clock = SimClock()
        self.message_listeners = []
        self.connection_listeners = []
        self._resolve()

    def _resolve(self):
        self.seed = self.settings.get_int('Scenario', 'seed', 0)
        self.nrof_hosts = self.settings.get_int('Scenario', 'nrofHosts')
        self.strict = self.settings.get_bool('Scenario', 'strictChecks', False)

    @property
    def now(self) -> float:
        return self.clock.time

    def rng_for(self, purpose: str, address: int = 0) -> random.Random:
        """
        Crée un générateur pseudo-aléatoire dédié, dérivé de la graine de l'exécution.

        Deux exécutions avec la même graine obtiennent exactement les mêmes tirages
        pour le même usage et la même adresse.

        Args:
            purpose (str): usage du générateur (ex. 'lucid', 'seer-reset')
            address (int): adresse du nœud propriétaire
        """
        return random.Random(f"{self.seed}:{purpose}:{address}")

    #*************** Écouteurs ****************
    def add_message_listener(self, listener):
        self.message_listeners.append(listener)

    def add_connection_listener(self, listener):
        self.connection_listeners.append(listener)

    def notify_message(self, event: str, *args):
        for listener in self.message_listeners:
            getattr(listener, event)(*args)

    def notify_connection(self, event: str, *args):
        for listener in self.connection_listeners:
            getattr(listener, event)(*args)

    def reset(self, settings: Settings = None):
        """
        Remet le contexte à zéro pour une nouvelle expérience.

        Args:
            settings (Settings, optional): nouveaux paramètres ; sinon les actuels sont conservés
        """
        if settings is not None:
            self.settings = settings
        self.clock.reset()
        self.message_listeners.clear()
        self.connection_listeners.clear()
        self._resolve()
        logger.debug("Contexte réinitialisé (graine %s, %s nœuds)", self.seed, self.nrof_hosts)
