#!/usr/bin/env python3
# protocols/seer.py
"""
SeeR : routage par recuit simulé.

Principe:
1. Chaque routeur estime un temps inter-contacts moyen (ICT), lissé
   exponentiellement à chaque reprise de contact avec un pair.
2. Chaque message porte une température, refroidie (multipliée par le
   coefficient de refroidissement) à chaque début de contact du nœud. En
   dessous d'un seuil, le message est gelé et n'est plus proposé.
3. Pour chaque couple (message, pair) :
   - élagage temporel : le pair est ignoré si la marge restante du message
     (TTL restant - 2 x âge) est inférieure à l'ICT du pair ;
   - un pair qui a déjà vu le message est ignoré ;
   - coût local = ict x (1 + sauts), coût pair = ict_pair x (2 + sauts) ;
   - acceptation si delta = coût pair - coût local <= 0, sinon avec la
     probabilité de Metropolis exp(-delta / (k x T)).
4. Les compteurs (contacts interrompus, messages vus) sont remis à zéro à
   intervalle aléatoire entre 10 et 12 heures simulées, jamais pendant un
   transfert.
"""
import logging
import math

from protocols.base import ActiveRouter
from protocols.tags import ProtocolTag, SEER_PROTOCOLS

logger = logging.getLogger(__name__)

SEER_NS = 'SeerRouter'
TEMPERATURE_PROPERTY = 'temperature'

DEFAULT_ICT = 3600.0
ICT_CURRENT_WEIGHT = 0.6
ZERO_TEMPERATURE = 0.001
DEFAULT_INITIAL_TEMPERATURE = 15000.0
DEFAULT_COOLING_COEFFICIENT = 0.95
DEFAULT_BOLTZMANN_CONSTANT = 1.0
# Intervalle de remise à zéro des compteurs (secondes)
RESET_INTERVAL_LOW = 10 * 3600
RESET_INTERVAL_HIGH = 12 * 3600


class IctEstimator:
    """
    Temps inter-contacts moyen d'un nœud, tous pairs confondus.

    La fin de contact avec un pair est mémorisée ; à la reprise du contact,
    la durée d'interruption alimente la moyenne lissée.
    """

    def __init__(self, initial: float = DEFAULT_ICT, weight: float = ICT_CURRENT_WEIGHT):
        self.value = float(initial)
        self.weight = weight
        self._contact_ended = {}  # adresse -> date de fin du dernier contact

    def __len__(self):
        return len(self._contact_ended)

    def on_contact_down(self, address: int, now: float):
        if address not in self._contact_ended:
            self._contact_ended[address] = now

    def on_contact_up(self, address: int, now: float):
        ended = self._contact_ended.pop(address, None)
        if ended is None:
            return
        delta = now - ended
        if delta > 1:
            self.value = self.weight * delta + (1 - self.weight) * self.value

    def reset(self):
        self._contact_ended.clear()


class SeenMessageCache:
    """
    Messages déjà reçus par ce nœud, avec leur date d'expiration.
    """

    def __init__(self):
        self._expiry = {}

    def __len__(self):
        return len(self._expiry)

    def __contains__(self, msg_id):
        return msg_id in self._expiry

    def add(self, msg_id: str, expiry: float):
        self._expiry[msg_id] = expiry

    def prune(self, now: float) -> int:
        """
        Retire les entrées expirées.

        Returns:
            int: nombre d'entrées retirées
        """
        expired = [msg_id for msg_id, expiry in self._expiry.items() if expiry <= now]
        for msg_id in expired:
            del self._expiry[msg_id]
        return len(expired)


class SeerRouter(ActiveRouter):
    """
    Routeur SeeR. Ne dialogue qu'avec d'autres routeurs SeeR.
    """

    protocol_tag = ProtocolTag.SEER
    compatible_protocols = SEER_PROTOCOLS

    def __init__(self, context):
        super().__init__(context)
        settings = context.settings
        self.initial_temperature = settings.get_float(SEER_NS, 'initialTemperature',
                                                      DEFAULT_INITIAL_TEMPERATURE)
        self.cooling_coefficient = settings.get_float(SEER_NS, 'coolingCoefficient',
                                                      DEFAULT_COOLING_COEFFICIENT)
        self.boltzmann_constant = settings.get_float(SEER_NS, 'boltzmannConstant',
                                                     DEFAULT_BOLTZMANN_CONSTANT)
        if self.initial_temperature <= 0:
            raise ValueError(f"initialTemperature doit être positive (reçu {self.initial_temperature})")
        if not 0.0 < self.cooling_coefficient <= 1.0:
            raise ValueError(f"coolingCoefficient doit être dans ]0, 1] (reçu {self.cooling_coefficient})")
        self.ict_estimator = IctEstimator()
        self.seen_messages = SeenMessageCache()
        self.next_reset_at = -1.0

    def __str__(self):
        return f"SeeR({self.host}, ict={self.ict:.0f}s)"

    @property
    def ict(self) -> float:
        return self.ict_estimator.value

    @staticmethod
    def temperature_of(m):
        return m.get_property(TEMPERATURE_PROPERTY)

    def create_new_message(self, m) -> bool:
        if not super().create_new_message(m):
            return False
        m.add_property(TEMPERATURE_PROPERTY, self.initial_temperature)
        return True

    #*************** Événements ****************
    def changed_connection(self, con):
        super().changed_connection(con)
        address = con.get_other_node(self.host).address
        if con.is_up:
            self.decrease_temperature()
            self.ict_estimator.on_contact_up(address, self.now)
        else:
            self.ict_estimator.on_contact_down(address, self.now)

    def decrease_temperature(self):
        """Refroidit tous les messages du tampon qui ne sont pas encore gelés."""
        for m in self.get_message_collection():
            temperature = self.temperature_of(m)
            if temperature is None or temperature < ZERO_TEMPERATURE:
                continue
            m.update_property(TEMPERATURE_PROPERTY, max(0.0, temperature * self.cooling_coefficient))

    def message_transferred(self, msg_id: str, from_host):
        m = super().message_transferred(msg_id, from_host)
        if m is not None:
            residual = m.residual_ttl_seconds(self.now)
            if residual > 0:
                self.seen_messages.add(msg_id, self.now + residual)
        return m

    def reset_counters(self):
        """
        Remise à zéro périodique des contacts interrompus et des messages vus
        expirés. Reportée tant qu'un transfert est en cours.
        """
        now = self.now
        if now <= self.next_reset_at or self.is_transferring():
            return
        pruned = self.seen_messages.prune(now)
        self.ict_estimator.reset()
        self.next_reset_at += self.rng.randint(RESET_INTERVAL_LOW, RESET_INTERVAL_HIGH)
        logger.debug("%s: compteurs remis à zéro (%d messages vus expirés), prochaine remise à %.0f",
                     self.host, pruned, self.next_reset_at)

    #*************** Mise à jour ****************
    def update(self):
        self.reset_counters()
        super().update()
        if not self.can_start_transfer() or self.is_transferring():
            return
        # Essayer d'abord les messages livrables au destinataire final
        if self.exchange_deliverable_messages() is not None:
            return
        self.try_other_messages()

    def is_pruned(self, m, peer_router) -> bool:
        """Élagage temporel : le pair est trop rarement en contact pour tenir l'échéance."""
        if m.initial_ttl is None:
            return False
        ttl_delta = m.initial_ttl * 60 - 2 * (self.now - m.creation_time)
        return ttl_delta < peer_router.ict

    def acceptance_probability(self, delta: float, temperature: float) -> float:
        """Probabilité de Metropolis exp(-delta / (k x T)), 1 si delta <= 0."""
        if delta <= 0:
            return 1.0
        energy = self.boltzmann_constant * temperature
        if energy <= 0:
            return 0.0
        p = math.exp(-delta / energy)
        return 0.0 if math.isnan(p) else p

    def should_forward(self, m, peer_router) -> bool:
        if self.is_pruned(m, peer_router) or m.id in peer_router.seen_messages:
            return False
        temperature = self.temperature_of(m)
        if temperature is None or temperature < ZERO_TEMPERATURE:
            return False
        local_cost = self.ict * (1 + m.hop_count)
        peer_cost = peer_router.ict * (2 + m.hop_count)
        delta = peer_cost - local_cost
        draw = self.rng.random()
        return delta <= 0 or draw < self.acceptance_probability(delta, temperature)

    def try_other_messages(self):
        """
        Propose les messages acceptés par le test de recuit.

        Returns:
            tuple: le couple (message, connexion) dont le transfert a démarré, ou None
        """
        candidates = []
        connections = sorted(self.get_connections(),
                             key=lambda con: con.get_other_node(self.host).address)
        messages = self.sort_by_queue_mode(self.get_message_collection())
        for con in connections:
            other = con.get_other_node(self.host)
            if not self.is_compatible(other) or other.router.is_transferring():
                continue
            for m in messages:
                if other.router.has_message(m.id):
                    continue
                if self.should_forward(m, other.router):
                    candidates.append((m, con))
        if not candidates:
            return None
        return self.try_messages_for_connected(candidates)
