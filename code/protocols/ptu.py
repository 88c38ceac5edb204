#!/usr/bin/env python3
# protocols/ptu.py
"""
Unités de traduction de protocole (PTU, Protocol Translation Unit).

Une PTU fait coexister dans une même simulation des routeurs à prédictibilité
(PRoPHET) et des routeurs à budget de copies (Spray-and-Wait). Elle tient deux
comptabilités côte à côte, et choisit pour chaque message celle qui s'applique
selon qu'il porte ou non un nombre de copies :
- message sans budget : échange PRoPHET classique (comparaison des prédictibilités) ;
- message avec budget : diffusion Spray-and-Wait, partage du budget à chaque transfert.

Le traitement d'un pair dépend de son étiquette protocolaire, résolue une seule
fois au premier contact (voir protocols/peer_cache.py).

Deux variantes :
- ProphetPtuRouter : routeur PRoPHET qui sait servir les pairs Spray-and-Wait ;
- SnwPtuRouter : routeur Spray-and-Wait qui tient une table de prédictibilité
  pour les pairs PRoPHET.
"""
import logging

from protocols.base import RCV_OK
from protocols.prophet import ProphetRouter, build_predictability_store, update_preds_on_contact
from protocols.replica_budget import MSG_COUNT_PROPERTY
from protocols.spray_and_wait import SprayAndWaitRouter, build_budget_tracker
from protocols.tags import (
    ProtocolTag, PREDICTABILITY_PROTOCOLS, PURE_BUDGET_PROTOCOLS, BUDGET_SENDER_PROTOCOLS,
    BUDGET_AWARE_PROTOCOLS,
)

logger = logging.getLogger(__name__)

# Valeur côté pair d'un pair purement à budget dans l'ordre de départage
BUDGET_PEER_VALUE = 1.0


class TranslationStrategy:
    """
    Règles de traduction entre la comptabilité PRoPHET et la comptabilité
    Spray-and-Wait, partagées par les deux PTU.
    """

    def __init__(self, router, budget, budget_peers):
        """
        Args:
            router (ActiveRouter): routeur propriétaire (cache protocolaire, nœud)
            budget (ReplicaBudgetTracker): suivi des budgets de copies
            budget_peers (frozenset): étiquettes des pairs à qui une réplique est
                remise avec son budget ; pour les autres, le budget est retiré
        """
        self.router = router
        self.budget = budget
        self.budget_peers = budget_peers

    def peer_tag(self, other) -> ProtocolTag:
        return self.router.peer_protocols.resolve(other)

    def translate_replica(self, replica, to_host):
        """
        Prépare la réplique pour la comptabilité du pair : budget attaché pour
        un pair à budget, retiré sinon.
        """
        if self.peer_tag(to_host) in self.budget_peers:
            self.budget.initialize(replica)
        elif replica.remove_property(MSG_COUNT_PROPERTY) is not None:
            logger.debug("%s: budget de %s retiré pour %s", self.router.host, replica.id, to_host)

    def on_received(self, m, from_host):
        """
        Comptabilité de la copie reçue : le partage de budget ne s'applique
        qu'aux messages venus d'un émetteur à budget. Un budget venu d'un
        émetteur PRoPHET est périmé et retiré.
        """
        if self.peer_tag(from_host) in BUDGET_SENDER_PROTOCOLS:
            self.budget.on_receive(m)
        elif m.remove_property(MSG_COUNT_PROPERTY) is not None:
            logger.debug("%s: budget périmé de %s (reçu de %s) retiré",
                         self.router.host, m.id, from_host)

    def on_sent(self, con):
        """Réduit le budget de la copie locale après un transfert émis."""
        m = self.router.get_message(con.get_message().id)
        if m is not None:
            self.budget.on_send(m)


class ProphetPtuRouter(ProphetRouter):
    """
    PTU côté PRoPHET.

    Envers un pair Spray-and-Wait pur : les messages sans budget reçoivent L
    copies avant d'être proposés, ceux qui ont encore plus d'une copie sont
    diffusés. Envers un pair à prédictibilité : un message qui lui est remis
    quitte la comptabilité Spray-and-Wait (budget retiré des deux côtés).
    """

    protocol_tag = ProtocolTag.PROPHET_PTU
    compatible_protocols = PREDICTABILITY_PROTOCOLS | BUDGET_AWARE_PROTOCOLS

    def __init__(self, context):
        super().__init__(context)
        self.budget = build_budget_tracker(context)
        self.translation = TranslationStrategy(self, self.budget, PURE_BUDGET_PROTOCOLS)

    def __str__(self):
        return f"PRoPHET-PTU({self.host})"

    def is_budget_peer(self, other) -> bool:
        return self.peer_protocols.resolve(other) in PURE_BUDGET_PROTOCOLS

    def translate_replica(self, replica, to_host):
        self.translation.translate_replica(replica, to_host)

    def start_transfer(self, m, con) -> int:
        retval = super().start_transfer(m, con)
        other = con.get_other_node(self.host)
        if retval == RCV_OK and not self.is_budget_peer(other):
            # Le message passe dans la comptabilité PRoPHET
            m.remove_property(MSG_COUNT_PROPERTY)
        return retval

    def message_transferred(self, msg_id: str, from_host):
        m = super().message_transferred(msg_id, from_host)
        if m is not None and m.destination is not self.host:
            self.translation.on_received(m, from_host)
        return m

    def transfer_done(self, con):
        self.translation.on_sent(con)

    def peer_value(self, m, con) -> float:
        other = con.get_other_node(self.host)
        if self.is_budget_peer(other):
            return BUDGET_PEER_VALUE
        return self.peer_pred_for(other, m.destination)

    def get_candidates(self) -> list:
        """
        Couples (message, connexion) à proposer, selon l'étiquette de chaque pair.
        """
        candidates = []
        for con in self.get_connections():
            other = con.get_other_node(self.host)
            if not self.is_compatible(other) or other.router.is_transferring():
                continue
            to_budget_peer = self.is_budget_peer(other)
            for m in self.get_message_collection():
                if other.router.has_message(m.id):
                    continue
                if self.budget.has_budget(m):
                    candidates.append((m, con))
                elif self.budget.is_budget_message(m):
                    # Une seule copie : livraison directe uniquement
                    continue
                elif to_budget_peer:
                    self.budget.initialize(m)
                    candidates.append((m, con))
                elif self.has_predictability(other) and \
                        self.peer_pred_for(other, m.destination) > self.get_pred_for(m.destination):
                    candidates.append((m, con))
        return candidates


class SnwPtuRouter(SprayAndWaitRouter):
    """
    PTU côté Spray-and-Wait.

    Diffuse les messages qui ont encore plus d'une copie à tous les pairs
    compatibles ; un message sans budget reçoit L copies au moment où les
    candidats sont sélectionnés. Tient une table de prédictibilité pour que les
    pairs PRoPHET puissent la consulter.
    """

    protocol_tag = ProtocolTag.SNW_PTU
    compatible_protocols = PREDICTABILITY_PROTOCOLS | BUDGET_AWARE_PROTOCOLS

    def __init__(self, context):
        super().__init__(context)
        self.predictability = build_predictability_store(context)
        self.translation = TranslationStrategy(self, self.budget, BUDGET_AWARE_PROTOCOLS)

    def __str__(self):
        return f"SnW-PTU({self.host})"

    def get_pred_for(self, host) -> float:
        return self.predictability.predictability_for(host.address)

    def changed_connection(self, con):
        super().changed_connection(con)
        if not con.is_up:
            return
        other = con.get_other_node(self.host)
        if self.peer_protocols.resolve(other) in PREDICTABILITY_PROTOCOLS:
            update_preds_on_contact(self, other)

    def translate_replica(self, replica, to_host):
        self.translation.translate_replica(replica, to_host)

    def account_received(self, m, from_host):
        self.translation.on_received(m, from_host)

    def transfer_done(self, con):
        self.translation.on_sent(con)

    def get_messages_with_copies_left(self) -> list:
        for m in self.get_message_collection():
            self.budget.initialize(m)
        return super().get_messages_with_copies_left()

