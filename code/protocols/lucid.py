#!/usr/bin/env python3
# protocols/lucid.py
"""
LUCID : dissémination bornée à une zone géographique.

Chaque message porte deux positions :
- origLocation : position du créateur au moment de la création (rapports seulement) ;
- initLocation : centre courant de la zone de réplication.

Variante A (LucidRouter) : seul le créateur réplique, et seulement tant que sa
position courante reste à moins de `localityRange` de initLocation. Les autres
porteurs gardent le message pour la livraison directe.

Variante B (LucidProbabilisticRouter) : tout porteur réplique, avec une
probabilité qui décroît avec la distance d entre sa position et initLocation,
tant que le nombre de sauts ne dépasse pas `maxHopCount`. À chaque réplique
acceptée, la position du récepteur devient le nouveau initLocation.
"""
import logging
import math

import numpy as np

from protocols.base import ActiveRouter, check_invariant
from protocols.tags import ProtocolTag, LUCID_PROTOCOLS

logger = logging.getLogger(__name__)

LUCID_NS = 'LucidRouter'
INIT_LOCATION_PROPERTY = 'initLocation'
ORIG_LOCATION_PROPERTY = 'origLocation'

# Seuil (fraction de la portée) en deçà duquel la réplication est certaine
CERTAIN_REPLICATION_RATIO = 0.75
# Portée à partir de laquelle la décroissance est plus lente
WIDE_RANGE_THRESHOLD = 300


def replication_probability(distance: float, locality_range: float) -> float:
    """
    Probabilité de réplication en fonction de la distance au centre de la zone.

    - d >= R : 0
    - d < 0.75 R : 1
    - sinon : 0.99^(d²/R) si R < 300, 0.992^(d²/R) au-delà

    Args:
        distance (float): distance entre le porteur et initLocation
        locality_range (float): portée R de la zone

    Returns:
        float: probabilité dans [0, 1]
    """
    if not math.isfinite(distance) or distance < 0:
        return 0.0
    if locality_range <= 0:
        # Zone réduite à un point
        return 1.0 if distance == 0 else 0.0
    if distance >= locality_range:
        return 0.0
    if distance < CERTAIN_REPLICATION_RATIO * locality_range:
        return 1.0
    base = 0.99 if locality_range < WIDE_RANGE_THRESHOLD else 0.992
    p = base ** (distance * distance / locality_range)
    if math.isnan(p):
        return 0.0
    return min(1.0, max(0.0, p))


class LucidRouter(ActiveRouter):
    """
    LUCID variante A : réplication contrôlée par la source.
    """

    protocol_tag = ProtocolTag.LUCID
    compatible_protocols = LUCID_PROTOCOLS

    def __init__(self, context):
        super().__init__(context)
        self.locality_range = context.settings.get_float(LUCID_NS, 'localityRange')

    def __str__(self):
        return f"LUCID({self.host}, R={self.locality_range:g})"

    def get_location(self):
        return self.host.location

    def init_location_of(self, m):
        """Centre de la zone de réplication du message (None si le message n'en porte pas)."""
        location = m.get_property(INIT_LOCATION_PROPERTY)
        if not check_invariant(self.context, location is not None,
                               f"{self.host}: le message {m.id} ne porte pas de {INIT_LOCATION_PROPERTY}"):
            return None
        return location

    def distance_to_init_location(self, m) -> float:
        location = self.init_location_of(m)
        if location is None:
            return math.inf
        return float(np.linalg.norm(self.get_location() - location))

    def create_new_message(self, m) -> bool:
        m.add_property(INIT_LOCATION_PROPERTY, self.get_location())
        m.add_property(ORIG_LOCATION_PROPERTY, self.get_location())
        return super().create_new_message(m)

    def update(self):
        super().update()
        if not self.can_start_transfer() or self.is_transferring():
            return
        # Essayer d'abord les messages livrables au destinataire final
        if self.exchange_deliverable_messages() is not None:
            return
        self.try_message_dissemination()

    def should_replicate(self, m) -> bool:
        # Seul le créateur réplique, tant qu'il reste dans la zone
        if m.source is not self.host:
            return False
        return self.distance_to_init_location(m) < self.locality_range

    def try_message_dissemination(self):
        """
        Propose aux pairs LUCID les messages éligibles à la réplication.

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
                if self.should_replicate(m):
                    candidates.append((m, con))
        if not candidates:
            return None
        return self.try_messages_for_connected(candidates)


class LucidProbabilisticRouter(LucidRouter):
    """
    LUCID variante B : dissémination épidémique probabiliste, recentrée sur le
    dernier porteur.
    """

    protocol_tag = ProtocolTag.LUCID_PROBABILISTIC

    def __init__(self, context):
        super().__init__(context)
        self.max_hop_count = context.settings.get_int(LUCID_NS, 'maxHopCount', 5)

    def __str__(self):
        return f"LUCID-B({self.host}, R={self.locality_range:g}, {self.max_hop_count} sauts)"

    def get_replication_probability(self, distance: float) -> float:
        return replication_probability(distance, self.locality_range)

    def should_replicate(self, m) -> bool:
        # Un tirage par couple (message, connexion) et par pas de temps
        draw = self.rng.random()
        p = self.get_replication_probability(self.distance_to_init_location(m))
        return draw < p and m.hop_count <= self.max_hop_count

    def message_transferred(self, msg_id: str, from_host):
        m = super().message_transferred(msg_id, from_host)
        if m is not None and m.destination is not self.host:
            # La zone de réplication est recentrée sur le nouveau porteur
            m.update_property(INIT_LOCATION_PROPERTY, self.get_location())
        return m
