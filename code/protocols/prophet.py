#!/usr/bin/env python3
# protocols/prophet.py
"""
Implémentation du protocole PRoPHET (Probabilistic Routing Protocol using History of Encounters and Transitivity)
pour les réseaux tolérants aux délais (DTN).

Principe:
1. Chaque nœud maintient une table P(A,B) qui estime la probabilité que A puisse
   livrer un message à B (voir protocols/predictability.py).
2. À chaque rencontre avec un pair compatible : mise à jour directe, puis
   transitive à partir de la table du pair.
3. Politique de transfert: un nœud A transfère une copie à B si et seulement si
   P(B,D) > P(A,D) où D est la destination finale.

Version compatible : un pair qui ne maintient pas de table de prédictibilité
(Spray-and-Wait pur, LUCID, SeeR...) n'est jamais interrogé et ne reçoit
aucune réplique de ce routeur.

Référence: Lindgren, A., Doria, A., & Schelén, O. (2003).
"Probabilistic routing in intermittently connected networks"
ACM SIGMOBILE mobile computing and communications review, 7(3), 19-20.
"""
import logging

from protocols.base import ActiveRouter, check_invariant
from protocols.ordering import sort_candidates
from protocols.predictability import DeliveryPredictabilityStore, DEFAULT_BETA, GAMMA
from protocols.tags import ProtocolTag, PREDICTABILITY_PROTOCOLS

logger = logging.getLogger(__name__)

PROPHET_NS = 'ProphetRouter'


def build_predictability_store(context) -> DeliveryPredictabilityStore:
    """
    Construit une table de prédictibilité à partir de l'espace de noms ProphetRouter.

    Args:
        context (RunContext): contexte de l'exécution

    Returns:
        DeliveryPredictabilityStore: table vide, attachée à l'horloge de l'exécution
    """
    settings = context.settings
    return DeliveryPredictabilityStore(
        context.clock,
        settings.get_float(PROPHET_NS, 'secondsInTimeUnit'),
        beta=settings.get_float(PROPHET_NS, 'beta', DEFAULT_BETA),
        gamma=settings.get_float(PROPHET_NS, 'gamma', GAMMA),
    )


def update_preds_on_contact(router, other):
    """
    Rencontre avec un pair porteur d'une table : mise à jour directe puis
    transitive à partir de la table (vieillie) du pair.

    Args:
        router: routeur local, porteur d'un attribut `predictability`
        other (Host): pair rencontré
    """
    peer_store = getattr(other.router, 'predictability', None)
    if not check_invariant(router.context, peer_store is not None,
                           f"{router.host}: le pair {other} n'expose pas de table de prédictibilité"):
        return
    router.predictability.on_contact_up(other.address)
    router.predictability.merge_transitive(other.address, peer_store.delivery_preds(),
                                           router.host.address)


class ProphetRouter(ActiveRouter):
    """
    Routeur PRoPHET compatible avec les autres familles de protocoles.

    La table de prédictibilité (attribut `predictability`) est la capacité que
    les pairs consultent, en lecture seule, pendant un contact.
    """

    protocol_tag = ProtocolTag.PROPHET
    compatible_protocols = PREDICTABILITY_PROTOCOLS

    def __init__(self, context):
        super().__init__(context)
        self.predictability = build_predictability_store(context)

    def __str__(self):
        return f"PRoPHET({self.host}, {len(self.predictability)} entrées)"

    #*************** Prédictibilités ****************
    def get_pred_for(self, host) -> float:
        """P(self, host), vieillie jusqu'à l'instant courant."""
        return self.predictability.predictability_for(host.address)

    def has_predictability(self, other) -> bool:
        """Le pair maintient-il une table de prédictibilité consultable ?"""
        return self.peer_protocols.resolve(other) in PREDICTABILITY_PROTOCOLS

    def peer_pred_for(self, other, destination) -> float:
        """
        P(pair, destination) lue dans la table du pair, sans la modifier.

        Args:
            other (Host): pair porteur d'une table de prédictibilité
            destination (Host): destination du message
        """
        return other.router.predictability.peek(destination.address)

    #*************** Événements ****************
    def changed_connection(self, con):
        super().changed_connection(con)
        if not con.is_up:
            return
        other = con.get_other_node(self.host)
        if not self.has_predictability(other):
            logger.debug("%s: pair %s (%s) sans table de prédictibilité", self.host, other,
                         self.peer_protocols.protocol_of(other.address).value)
            return
        update_preds_on_contact(self, other)

    #*************** Mise à jour ****************
    def update(self):
        super().update()
        if not self.can_start_transfer() or self.is_transferring():
            return
        # Essayer d'abord les messages livrables au destinataire final
        if self.exchange_deliverable_messages() is not None:
            return
        self.try_other_messages()

    def peer_value(self, m, con) -> float:
        """Valeur côté pair utilisée par l'ordre de départage : P(pair, destination)."""
        return self.peer_pred_for(con.get_other_node(self.host), m.destination)

    def get_candidates(self) -> list:
        candidates = []
        for con in self.get_connections():
            other = con.get_other_node(self.host)
            if not self.has_predictability(other) or other.router.is_transferring():
                continue
            for m in self.get_message_collection():
                if other.router.has_message(m.id):
                    continue
                if self.peer_pred_for(other, m.destination) > self.get_pred_for(m.destination):
                    candidates.append((m, con))
        return candidates

    def try_other_messages(self):
        """
        Propose les messages aux pairs dont la prédictibilité vers la destination
        est meilleure que la nôtre, dans l'ordre de départage commun.

        Returns:
            tuple: le couple (message, connexion) dont le transfert a démarré, ou None
        """
        candidates = self.get_candidates()
        if not candidates:
            return None
        return self.try_messages_for_connected(
            sort_candidates(candidates, self.peer_value, self.queue_key, self.host))
