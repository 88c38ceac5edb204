#!/usr/bin/env python3
# protocols/base.py
"""
Classe de base pour les routeurs DTN (Delay-Tolerant Networking).

ActiveRouter porte le cycle de vie générique des messages : tampon borné,
expiration des TTL, démarrage et fin des transferts, chemin de livraison
directe au destinataire final. Les protocoles n'ajoutent que leur logique de
décision (quels messages répliquer, vers quels pairs, dans quel ordre).
"""
import logging

from protocols.errors import check_invariant
from protocols.ordering import queue_mode_key
from protocols.peer_cache import PeerProtocolCache
from protocols.tags import ProtocolTag

logger = logging.getLogger(__name__)

# Codes de réception
RCV_OK = 0
TRY_LATER_BUSY = 1
DENIED_OLD = -1
DENIED_NO_SPACE = -2
DENIED_TTL = -3
DENIED_INCOMPATIBLE = -123


class ActiveRouter:
    """
    Classe de base des routeurs.

    Un routeur est attaché à un seul nœud. Il ne lit des routeurs pairs que ce
    qui est accessible à travers une connexion active, sans jamais les modifier.
    """

    protocol_tag = ProtocolTag.UNKNOWN
    # Familles de pairs avec lesquelles le routeur échange des messages (None = toutes)
    compatible_protocols = None

    def __init__(self, context):
        """
        Initialise un routeur.

        Args:
            context (RunContext): contexte partagé de l'exécution (paramètres, horloge, écouteurs)
        """
        self.context = context
        settings = context.settings
        self.buffer_size = settings.get_int('Group', 'bufferSize')
        self.msg_ttl = settings.get('Group', 'msgTtl', None)
        self.send_queue_mode = settings.get_str('Group', 'sendQueue', 'fifo')
        self.queue_key = queue_mode_key(self.send_queue_mode, context.seed)

        self.host = None
        self.rng = None
        self.messages = {}             # Tampon : id -> Message (ordre d'insertion)
        self.incoming = {}             # Messages en cours de réception
        self.delivered = set()         # Ids des messages livrés à ce nœud
        self.sending_connections = []  # Connexions sur lesquelles ce routeur émet
        self.peer_protocols = PeerProtocolCache(context.nrof_hosts, context.strict)

    def init(self, host):
        """
        Attache le routeur à son nœud et crée son générateur pseudo-aléatoire.

        Args:
            host (Host): nœud propriétaire
        """
        self.host = host
        self.rng = self.context.rng_for(self.protocol_tag.value, host.address)

    def __str__(self):
        return f"{type(self).__name__}({self.host})"

    @property
    def now(self) -> float:
        return self.context.now

    def get_connections(self) -> list:
        return self.host.connections if self.host is not None else []

    def is_compatible(self, other) -> bool:
        """
        Indique si ce routeur échange des messages avec le pair (étiquette résolue
        au premier contact puis servie par le cache).

        Args:
            other (Host): nœud pair
        """
        if self.compatible_protocols is None:
            return True
        return self.peer_protocols.resolve(other) in self.compatible_protocols

    def translate_replica(self, replica, to_host):
        """
        Adapte la réplique d'un message juste avant qu'elle soit proposée au pair.
        Aucune adaptation par défaut.
        """

    #*************** Tampon ****************
    def has_message(self, msg_id: str) -> bool:
        return msg_id in self.messages

    def get_message(self, msg_id: str):
        return self.messages.get(msg_id)

    def get_message_collection(self) -> list:
        return list(self.messages.values())

    def get_nrof_messages(self) -> int:
        return len(self.messages)

    def get_free_buffer_size(self) -> int:
        return self.buffer_size - sum(m.size for m in self.messages.values())

    def add_to_messages(self, m, new_message: bool):
        self.messages[m.id] = m
        if new_message:
            self.context.notify_message('new_message', m)

    def remove_from_messages(self, msg_id: str):
        return self.messages.pop(msg_id, None)

    def delete_message(self, msg_id: str, drop: bool):
        """
        Supprime un message du tampon.

        Args:
            msg_id (str): identifiant du message
            drop (bool): True si le message est abandonné (place, TTL), False s'il est retiré
        """
        m = self.remove_from_messages(msg_id)
        if m is not None:
            self.context.notify_message('message_deleted', m, self.host, drop)

    def is_sending(self, msg_id: str) -> bool:
        for con in self.sending_connections:
            m = con.get_message()
            if m is not None and m.id == msg_id:
                return True
        return False

    def get_oldest_message(self, exclude_sending: bool = True):
        """Message reçu le plus tôt, en excluant ceux en cours d'envoi."""
        oldest = None
        for m in self.messages.values():
            if exclude_sending and self.is_sending(m.id):
                continue
            if oldest is None or (m.receive_time, m.id) < (oldest.receive_time, oldest.id):
                oldest = m
        return oldest

    def make_room_for_message(self, size: int) -> bool:
        """
        Libère de la place en abandonnant les messages les plus anciens.

        Returns:
            bool: True si le message peut être stocké
        """
        if size > self.buffer_size:
            return False
        free = self.get_free_buffer_size()
        while free < size:
            m = self.get_oldest_message(exclude_sending=True)
            if m is None:
                return False
            self.delete_message(m.id, True)
            free += m.size
        return True

    def drop_expired_messages(self):
        now = self.now
        for m in self.get_message_collection():
            if m.ttl_remaining(now) <= 0:
                self.delete_message(m.id, True)

    #*************** Interface avec le moteur ****************
    def create_new_message(self, m) -> bool:
        """
        Ajoute au tampon un message créé par ce nœud.

        Returns:
            bool: True si le message a été accepté
        """
        if not self.make_room_for_message(m.size):
            logger.debug("%s: pas de place pour le nouveau message %s", self.host, m.id)
            return False
        if self.msg_ttl is not None:
            m.initial_ttl = float(self.msg_ttl)
        m.receive_time = self.now
        self.add_to_messages(m, True)
        return True

    def check_receiving(self, m, from_host) -> int:
        if not self.is_compatible(from_host):
            return DENIED_INCOMPATIBLE
        if self.is_transferring():
            return TRY_LATER_BUSY
        if self.has_message(m.id) or m.id in self.delivered:
            return DENIED_OLD
        if m.ttl_remaining(self.now) <= 0 and m.destination is not self.host:
            return DENIED_TTL
        if m.destination is not self.host and not self.make_room_for_message(m.size):
            return DENIED_NO_SPACE
        return RCV_OK

    def receive_message(self, m, from_host) -> int:
        """
        Début de réception d'une réplique proposée par un pair.

        Returns:
            int: code de réception
        """
        retval = self.check_receiving(m, from_host)
        if retval != RCV_OK:
            return retval
        self.incoming[m.id] = m
        self.context.notify_message('message_transfer_started', m, from_host, self.host)
        return RCV_OK

    def message_transferred(self, msg_id: str, from_host):
        """
        Fin de réception d'un message.

        Args:
            msg_id (str): identifiant du message reçu
            from_host (Host): nœud émetteur

        Returns:
            Message: la copie reçue (None si aucune réception n'était en cours)
        """
        m = self.incoming.pop(msg_id, None)
        if not check_invariant(self.context, m is not None,
                               f"{self.host}: aucun transfert en cours pour {msg_id}"):
            return None
        m.add_node_on_path(self.host)
        m.receive_time = self.now

        is_final_recipient = m.destination is self.host
        first_delivery = is_final_recipient and msg_id not in self.delivered
        if is_final_recipient:
            self.delivered.add(msg_id)
        elif not self.has_message(msg_id):
            self.add_to_messages(m, False)

        self.context.notify_message('message_transferred', m, from_host, self.host, first_delivery)
        return m

    def message_aborted(self, msg_id: str, from_host, bytes_remaining: int):
        m = self.incoming.pop(msg_id, None)
        if m is not None:
            self.context.notify_message('message_transfer_aborted', m, from_host, self.host)

    def transfer_done(self, con):
        """
        Appelé juste avant la finalisation d'un transfert émis par ce routeur.
        """

    def changed_connection(self, con):
        """
        Notification d'un changement d'état de connexion (début ou fin de contact).
        """
        if con.is_up:
            # Résolution paresseuse de l'étiquette du pair au premier contact
            self.peer_protocols.resolve(con.get_other_node(self.host))
        elif con in self.sending_connections:
            self.sending_connections.remove(con)

    #*************** Transferts ****************
    def can_start_transfer(self) -> bool:
        return self.get_nrof_messages() > 0 and len(self.get_connections()) > 0

    def is_transferring(self) -> bool:
        if self.sending_connections:
            return True
        for con in self.get_connections():
            if not con.is_ready_for_transfer():
                return True
        return False

    def start_transfer(self, m, con) -> int:
        """
        Tente de démarrer le transfert d'un message sur une connexion.

        Returns:
            int: code de réception (RCV_OK si le transfert a démarré)
        """
        if not self.is_compatible(con.get_other_node(self.host)):
            return DENIED_INCOMPATIBLE
        if not con.is_ready_for_transfer():
            return TRY_LATER_BUSY
        retval = con.start_transfer(self.host, m, self.now)
        if retval == RCV_OK:
            self.sending_connections.append(con)
        elif retval == DENIED_OLD and m.destination is con.get_other_node(self.host):
            # Le destinataire a déjà reçu ce message
            self.delete_message(m.id, False)
        return retval

    def try_all_messages(self, con, messages):
        """
        Essaie les messages dans l'ordre jusqu'à ce qu'un transfert démarre.

        Returns:
            Message: le message dont le transfert a démarré, ou None
        """
        for m in messages:
            retval = self.start_transfer(m, con)
            if retval == RCV_OK:
                return m
            if retval > 0:
                return None  # Pair occupé, réessayer plus tard
        return None

    def try_messages_to_connections(self, messages, connections):
        for con in connections:
            started = self.try_all_messages(con, messages)
            if started is not None:
                return con
        return None

    def try_messages_for_connected(self, candidates):
        """
        Essaie une liste ordonnée de couples (message, connexion).

        Returns:
            tuple: le couple dont le transfert a démarré, ou None
        """
        for m, con in candidates:
            if self.start_transfer(m, con) == RCV_OK:
                return (m, con)
        return None

    def sort_by_queue_mode(self, messages) -> list:
        return sorted(messages, key=self.queue_key)

    def get_messages_for_connected(self) -> list:
        """Couples (message, connexion) dont le pair est le destinataire final."""
        candidates = []
        for con in self.get_connections():
            other = con.get_other_node(self.host)
            if not self.is_compatible(other):
                continue
            for m in self.get_message_collection():
                if m.destination is other:
                    candidates.append((m, con))
        return sorted(candidates,
                      key=lambda t: (self.queue_key(t[0]), t[1].get_other_node(self.host).address))

    def exchange_deliverable_messages(self):
        """
        Chemin de livraison directe : tente d'abord d'envoyer les messages dont le
        pair est le destinataire, puis demande aux pairs les messages qui nous sont
        destinés.

        Returns:
            Connection: la connexion sur laquelle un transfert a démarré, ou None
        """
        connections = self.get_connections()
        if not connections:
            return None
        started = self.try_messages_for_connected(self.get_messages_for_connected())
        if started is not None:
            return started[1]
        for con in connections:
            other = con.get_other_node(self.host)
            if not self.is_compatible(other):
                continue
            if other.router.request_deliverable_messages(con):
                return con
        return None

    def request_deliverable_messages(self, con) -> bool:
        """
        Un pair demande les messages qui lui sont destinés.

        Returns:
            bool: True si un transfert a démarré
        """
        if self.is_transferring():
            return False
        other = con.get_other_node(self.host)
        for m in self.sort_by_queue_mode(self.get_message_collection()):
            if m.destination is other and self.start_transfer(m, con) == RCV_OK:
                return True
        return False

    #*************** Mise à jour ****************
    def update(self):
        """
        Appelé une fois par pas de temps : finalise les transferts terminés et
        abandonne les messages expirés. Les protocoles surchargent cette méthode
        pour proposer leurs transferts après l'appel à la classe de base.
        """
        now = self.now
        for con in list(self.sending_connections):
            if not con.is_up or con.msg_from_node is not self.host:
                self.sending_connections.remove(con)
                continue
            if con.is_message_transferred(now):
                m = con.get_message()
                other = con.get_other_node(self.host)
                self.transfer_done(con)
                con.finalize_transfer()
                self.sending_connections.remove(con)
                if m.destination is other and self.has_message(m.id):
                    # Message remis au destinataire final : la copie locale n'est plus utile
                    self.delete_message(m.id, False)
        self.drop_expired_messages()
