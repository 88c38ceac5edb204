# simulation/events.py
"""
Génération des messages de la simulation.

Toutes les `interval` secondes (tirage uniforme dans l'intervalle configuré),
un message de taille aléatoire est créé entre deux nœuds distincts tirés au
hasard. Le générateur est dérivé de la graine de l'exécution.
"""
import logging

from models.message import Message

logger = logging.getLogger(__name__)

EVENTS_NS = 'Events'


class MessageEventGenerator:
    """
    Crée les messages à intervalles aléatoires reproductibles.
    """

    def __init__(self, context, hosts):
        """
        Args:
            context (RunContext): contexte de l'exécution
            hosts (list): nœuds de la simulation, indexés par adresse
        """
        settings = context.settings
        self.context = context
        self.hosts = {host.address: host for host in hosts}
        self.interval = settings.get_range(EVENTS_NS, 'interval')
        self.size = settings.get_range(EVENTS_NS, 'size')
        self.host_range = settings.get_range(EVENTS_NS, 'hosts', (0, len(hosts)))
        self.prefix = settings.get_str(EVENTS_NS, 'prefix', 'M')
        if self.host_range[1] - self.host_range[0] < 2:
            raise ValueError(f"Il faut au moins deux nœuds pour générer des messages ({self.host_range})")
        self.rng = context.rng_for('events')
        self.counter = 0
        self.next_event_time = self._draw_interval()

    def _draw_interval(self) -> float:
        low, high = self.interval
        return self.rng.uniform(low, high)

    def _draw_pair(self):
        low, high = self.host_range
        source = self.rng.randrange(low, high)
        destination = self.rng.randrange(low, high - 1)
        if destination >= source:
            destination += 1
        return self.hosts[source], self.hosts[destination]

    def next_message(self, now: float) -> Message:
        self.counter += 1
        source, destination = self._draw_pair()
        size = self.rng.randint(int(self.size[0]), int(self.size[1]))
        return Message(f"{self.prefix}{self.counter}", source, destination, size, creation_time=now)

    def update(self) -> list:
        """
        Crée les messages dont l'heure est venue.

        Returns:
            list: messages acceptés par le routeur de leur source
        """
        now = self.context.now
        created = []
        while now >= self.next_event_time:
            m = self.next_message(now)
            if m.source.router.create_new_message(m):
                created.append(m)
            else:
                logger.debug("t=%.1f: message %s refusé par %s", now, m.id, m.source)
            self.next_event_time += self._draw_interval()
        return created
