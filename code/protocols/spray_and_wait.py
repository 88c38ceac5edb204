#!/usr/bin/env python3
# protocols/spray_and_wait.py
"""
Implémentation du protocole Spray-and-Wait pour les réseaux tolérants aux délais (DTN).

Principe:
1. Phase Spray: À l'émission, la source initialise L copies.
   Lors d'une rencontre, un nœud avec >1 copies en donne une part à son pair
   (voir protocols/replica_budget.py).
2. Phase Wait: Dès qu'un nœud n'a plus qu'une seule copie, il attend de
   rencontrer directement la destination pour transmettre.

Version compatible : les pairs PRoPHET purs (sans budget de copies) sont
ignorés ; les unités de traduction (PTU) servent de passerelle.

Variante avec utilité : un message n'est diffusé qu'aux pairs qui ont
rencontré la destination plus souvent que nous.

Référence: Thrasyvoulos Spyropoulos, Konstantinos Psounis, Cauligi S. Raghavendra,
"Spray and Wait: An Efficient Routing Scheme for Intermittently Connected Mobile Networks"
"""
import logging

from protocols.base import ActiveRouter
from protocols.ordering import sort_candidates
from protocols.replica_budget import ReplicaBudgetTracker
from protocols.tags import ProtocolTag, BUDGET_AWARE_PROTOCOLS

logger = logging.getLogger(__name__)

SPRAYANDWAIT_NS = 'SprayAndWaitRouter'


def build_budget_tracker(context) -> ReplicaBudgetTracker:
    """
    Construit le suivi de budget à partir de l'espace de noms SprayAndWaitRouter.

    Args:
        context (RunContext): contexte de l'exécution
    """
    settings = context.settings
    return ReplicaBudgetTracker(settings.get_int(SPRAYANDWAIT_NS, 'nrofCopies'),
                                binary=settings.get_bool(SPRAYANDWAIT_NS, 'binaryMode', True))


class SprayAndWaitRouter(ActiveRouter):
    """
    Routeur Spray-and-Wait compatible avec les unités de traduction.
    """

    protocol_tag = ProtocolTag.SPRAY_AND_WAIT
    compatible_protocols = BUDGET_AWARE_PROTOCOLS

    def __init__(self, context):
        super().__init__(context)
        self.budget = build_budget_tracker(context)

    def __str__(self):
        return f"{self.budget}({self.host})"

    def create_new_message(self, m) -> bool:
        self.budget.initialize(m)
        return super().create_new_message(m)

    def message_transferred(self, msg_id: str, from_host):
        m = super().message_transferred(msg_id, from_host)
        if m is None or m.destination is self.host:
            return m
        self.account_received(m, from_host)
        return m

    def account_received(self, m, from_host):
        """
        Fixe la part de budget de la copie reçue (ceil(n/2) en mode binaire, 1 sinon).
        """
        if not self.budget.is_budget_message(m):
            # Heuristique de réparation de compatibilité : un message a perdu son
            # budget lors d'un passage par un routeur d'une autre famille
            repaired = max(1, self.budget.initial_copies // 2)
            logger.warning("%s: message %s reçu de %s sans nombre de copies, budget réparé à %d",
                           self.host, m.id, from_host, repaired)
            self.budget.initialize(m, repaired)
        self.budget.on_receive(m)

    def transfer_done(self, con):
        """
        Réduit le nombre de copies restantes de notre copie du message après un
        transfert : floor(n/2) en mode binaire, n - 1 sinon.
        """
        m = self.get_message(con.get_message().id)
        if m is None:
            # Message abandonné depuis le début du transfert
            return
        self.budget.on_send(m)

    def get_messages_with_copies_left(self) -> list:
        """Messages portant encore plus d'une copie."""
        return [m for m in self.get_message_collection() if self.budget.has_budget(m)]

    def update(self):
        super().update()
        if not self.can_start_transfer() or self.is_transferring():
            return
        # Essayer d'abord les messages livrables au destinataire final
        if self.exchange_deliverable_messages() is not None:
            return
        copies_left = self.sort_by_queue_mode(self.get_messages_with_copies_left())
        if copies_left:
            connections = sorted(self.get_connections(),
                                 key=lambda con: con.get_other_node(self.host).address)
            self.try_messages_to_connections(copies_left, connections)


class SprayAndWaitUtilityRouter(SprayAndWaitRouter):
    """
    Spray-and-Wait guidé par une utilité de rencontre.

    utilité(d) = (1 + nombre de contacts avec d) * (1 + nombre de pairs déjà rencontrés)
    """

    protocol_tag = ProtocolTag.SPRAY_AND_WAIT_UTILITY

    def __init__(self, context):
        super().__init__(context)
        self.encounters = {}  # adresse -> nombre de contacts

    def changed_connection(self, con):
        super().changed_connection(con)
        if con.is_up:
            other = con.get_other_node(self.host)
            self.encounters[other.address] = self.encounters.get(other.address, 0) + 1

    def get_utility(self, address: int) -> float:
        return (1.0 + self.encounters.get(address, 0)) * (1.0 + len(self.encounters))

    def get_messages_with_copies_left(self) -> list:
        # La diffusion aveugle est remplacée par la comparaison d'utilités
        return []

    def update(self):
        super().update()
        if not self.can_start_transfer() or self.is_transferring():
            return
        self.try_other_messages()

    def peer_value(self, m, con) -> float:
        return con.get_other_node(self.host).router.get_utility(m.destination.address)

    def try_other_messages(self):
        """
        Propose les messages qui portent encore plus d'une copie aux pairs dont
        l'utilité vers la destination est plus grande que la nôtre.
        """
        candidates = []
        for con in self.get_connections():
            other = con.get_other_node(self.host)
            if self.peer_protocols.resolve(other) is not ProtocolTag.SPRAY_AND_WAIT_UTILITY:
                continue
            other_router = other.router
            if other_router.is_transferring():
                continue
            for m in self.get_message_collection():
                if other_router.has_message(m.id) or not self.budget.has_budget(m):
                    continue
                destination = m.destination.address
                if other_router.get_utility(destination) > self.get_utility(destination):
                    candidates.append((m, con))
        if not candidates:
            return None
        return self.try_messages_for_connected(
            sort_candidates(candidates, self.peer_value, self.queue_key, self.host))
