# simulation/engine.py
"""
Moteur de simulation à pas de temps fixe.

À chaque pas :
1. l'horloge avance de `updateInterval` secondes ;
2. les nœuds sont déplacés selon les traces ;
3. les contacts sont mis à jour (ouverture / fermeture des connexions) ;
4. les nouveaux messages sont créés ;
5. le routeur de chaque nœud est mis à jour une fois, par ordre d'adresse.
"""
import logging

from tqdm import tqdm

from config import SettingsError
from data.loader import TraceMovement, random_walk_traces
from models.host import Host
from models.swarm import Swarm
from protocols.lucid import LucidRouter, LucidProbabilisticRouter
from protocols.prophet import ProphetRouter
from protocols.ptu import ProphetPtuRouter, SnwPtuRouter
from protocols.seer import SeerRouter
from protocols.spray_and_wait import SprayAndWaitRouter, SprayAndWaitUtilityRouter
from simulation.context import RunContext
from simulation.events import MessageEventGenerator

logger = logging.getLogger(__name__)

# Routeurs disponibles, par nom de configuration
ROUTERS = {
    'ProphetRouter': ProphetRouter,
    'SprayAndWaitRouter': SprayAndWaitRouter,
    'SprayAndWaitUtilityRouter': SprayAndWaitUtilityRouter,
    'ProphetPtuRouter': ProphetPtuRouter,
    'SnwPtuRouter': SnwPtuRouter,
    'LucidRouter': LucidRouter,
    'LucidProbabilisticRouter': LucidProbabilisticRouter,
    'SeerRouter': SeerRouter,
}


def create_router(name, context):
    """
    Instancie un routeur à partir de son nom de configuration.

    Raises:
        SettingsError: si le nom est inconnu
    """
    try:
        router_class = ROUTERS[name]
    except KeyError:
        raise SettingsError(f"Routeur inconnu: {name!r} (disponibles: {', '.join(sorted(ROUTERS))})")
    return router_class(context)


def router_names_for(settings, nrof_hosts):
    """
    Routeur de chaque nœud. `Group.router` est soit un nom, soit une liste de
    noms attribués à tour de rôle par adresse (population mixte).
    """
    names = settings.get('Group', 'router')
    if isinstance(names, str):
        names = [names]
    if not names:
        raise SettingsError("Group.router ne peut pas être vide")
    return [names[address % len(names)] for address in range(nrof_hosts)]


class Simulation:
    """
    Une exécution complète : nœuds, contacts, messages et rapports.
    """

    def __init__(self, settings=None, traces=None, generate_messages=True):
        """
        Args:
            settings (Settings, optional): paramètres de l'exécution. Par défaut CONFIG.
            traces (pd.DataFrame, optional): traces de positions. Par défaut une marche aléatoire.
            generate_messages (bool, optional): active le générateur de messages. Par défaut True.
        """
        self.context = RunContext(settings)
        settings = self.context.settings
        self.end_time = settings.get_float('Scenario', 'endTime')
        self.update_interval = settings.get_float('Scenario', 'updateInterval')
        if self.update_interval <= 0:
            raise SettingsError(f"Scenario.updateInterval doit être positif (reçu {self.update_interval})")

        nrof_hosts = self.context.nrof_hosts
        self.hosts = []
        for address, name in enumerate(router_names_for(settings, nrof_hosts)):
            self.hosts.append(Host(address, create_router(name, self.context)))

        if traces is None:
            traces = random_walk_traces(
                nrof_hosts, self.end_time,
                world_size=settings.get('Scenario', 'worldSize', (1000, 1000)),
                speed=settings.get_range('Group', 'speed', (0.5, 1.5)),
                seed=self.context.seed)
        self.movement = TraceMovement(traces)
        self.swarm = Swarm(self.context,
                           transmit_range=settings.get_float('Group', 'transmitRange'),
                           transmit_speed=settings.get_float('Group', 'transmitSpeed'),
                           hosts=self.hosts)
        self.events = MessageEventGenerator(self.context, self.hosts) if generate_messages else None
        self.reports = []
        self.movement.move_hosts(self.hosts, self.context.now)

    def __str__(self):
        return f"Simulation({len(self.hosts)} nœuds, {self.end_time:.0f} s, graine {self.context.seed})"

    @property
    def now(self) -> float:
        return self.context.now

    def add_report(self, report):
        """
        Abonne un rapport aux événements de messages et/ou de connexions.
        """
        if hasattr(report, 'message_transferred'):
            self.context.add_message_listener(report)
        if hasattr(report, 'hosts_connected'):
            self.context.add_connection_listener(report)
        self.reports.append(report)
        return report

    def tick(self):
        """Exécute un pas de temps."""
        self.context.clock.advance(self.update_interval)
        self.movement.move_hosts(self.hosts, self.now)
        self.swarm.update_contacts()
        if self.events is not None:
            self.events.update()
        for host in self.hosts:
            host.router.update()

    def run(self, progress=False):
        """
        Exécute la simulation jusqu'à `Scenario.endTime`.

        Args:
            progress (bool): affiche une barre de progression

        Returns:
            Simulation: l'objet lui-même
        """
        logger.info("Démarrage: %s", self)
        self.swarm.update_contacts()
        n_ticks = int(round((self.end_time - self.now) / self.update_interval))
        for _ in tqdm(range(n_ticks), desc="Simulation", unit="pas", disable=not progress):
            self.tick()
        for report in self.reports:
            if hasattr(report, 'done'):
                report.done(self)
        logger.info("Fin de simulation à t=%.0f s", self.now)
        return self
