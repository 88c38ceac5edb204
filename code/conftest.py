# conftest.py
"""
Fixtures communes des tests : contexte d'exécution, nœuds équipés de
routeurs, contacts scriptés et finalisation des transferts.
"""
import pytest

from config import Settings
from models.host import Host
from models.message import Message
from models.swarm import Swarm
from protocols.base import ActiveRouter
from simulation.context import RunContext


def make_settings(nrof_hosts=4, **namespaces):
    """
    Paramètres de test : CONFIG avec quelques surcharges.

    Args:
        nrof_hosts (int): nombre de nœuds
        **namespaces: surcharges par espace de noms, ex. SprayAndWaitRouter={'nrofCopies': 8}
    """
    overrides = {'Scenario': {'nrofHosts': nrof_hosts, 'strictChecks': True}}
    for namespace, values in namespaces.items():
        overrides.setdefault(namespace, {}).update(values)
    return Settings(overrides=overrides)


@pytest.fixture
def make_context():
    def _make(nrof_hosts=4, **namespaces):
        return RunContext(make_settings(nrof_hosts, **namespaces))
    return _make


@pytest.fixture
def make_hosts():
    """
    Crée des nœuds d'adresses 0..n-1, un routeur par classe donnée.
    """
    def _make(context, router_classes, positions=None):
        hosts = []
        for address, router_class in enumerate(router_classes):
            x, y = positions[address] if positions else (0.0, 0.0)
            hosts.append(Host(address, router_class(context), x, y))
        return hosts
    return _make


@pytest.fixture
def make_swarm():
    def _make(context, hosts):
        return Swarm(context, transmit_range=100, transmit_speed=1000, hosts=hosts)
    return _make


def new_message(msg_id, source, destination, size=100):
    return Message(msg_id, source, destination, size, creation_time=source.router.now)


def finish_transfers(context, hosts, dt=1.0):
    """
    Avance l'horloge puis finalise les transferts terminés, sans proposer de
    nouveaux messages.
    """
    context.clock.advance(dt)
    for host in hosts:
        ActiveRouter.update(host.router)


def send(context, sender, hosts, dt=1.0):
    """
    Laisse le routeur émetteur proposer un message, puis finalise le transfert.

    Returns:
        tuple: le couple (message, connexion) dont le transfert a démarré, ou None
    """
    sender.router.update()
    started = [(con.get_message(), con) for con in sender.connections
               if con.is_transferring() and con.msg_from_node is sender]
    finish_transfers(context, hosts, dt)
    return started[0] if started else None
