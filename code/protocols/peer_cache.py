#!/usr/bin/env python3
# protocols/peer_cache.py
"""
Identité protocolaire des pairs et cache par adresse.

Chaque routeur expose une étiquette (ProtocolTag) qui décrit sa famille de
protocole. Au premier contact avec une adresse donnée, le routeur interroge
le pair une seule fois et mémorise son étiquette pour toute la durée de
l'exécution : une adresse désigne toujours le même nœud logique, la mise en
cache est donc exacte et évite de sonder le pair à chaque message.
"""
import logging

from protocols.errors import RoutingInvariantError
from protocols.tags import ProtocolTag

logger = logging.getLogger(__name__)


def protocol_tag_of(router) -> ProtocolTag:
    """
    Interroge un routeur sur son identité protocolaire.

    Args:
        router: routeur pair (ou None)

    Returns:
        ProtocolTag: étiquette du routeur, UNKNOWN s'il n'en déclare pas
    """
    tag = getattr(router, 'protocol_tag', None)
    return tag if isinstance(tag, ProtocolTag) else ProtocolTag.UNKNOWN


class PeerProtocolCache:
    """
    Mémoire, par adresse de pair, de l'étiquette protocolaire découverte.

    Une case par adresse (taille = nombre total de nœuds). Chaque case est
    écrite au plus une fois : le premier contact l'emporte.
    """

    def __init__(self, nrof_hosts: int, strict: bool = True):
        """
        Args:
            nrof_hosts (int): nombre total de nœuds de la simulation
            strict (bool): si True, une adresse hors limites lève une erreur
        """
        self._slots = [None] * int(nrof_hosts)
        self.strict = strict

    def __len__(self):
        return len(self._slots)

    def __contains__(self, address):
        return 0 <= address < len(self._slots) and self._slots[address] is not None

    def _valid(self, address) -> bool:
        if 0 <= address < len(self._slots):
            return True
        message = f"Adresse {address} hors du cache protocolaire ({len(self._slots)} cases)"
        if self.strict:
            raise RoutingInvariantError(message)
        logger.debug(message)
        return False

    def protocol_of(self, address: int) -> ProtocolTag:
        """
        Retourne l'étiquette mémorisée pour une adresse, UNKNOWN si le pair n'a
        jamais été rencontré.
        """
        if not self._valid(address):
            return ProtocolTag.UNKNOWN
        tag = self._slots[address]
        return tag if tag is not None else ProtocolTag.UNKNOWN

    def remember(self, address: int, tag: ProtocolTag) -> ProtocolTag:
        """
        Mémorise l'étiquette d'un pair si la case est vide.

        Returns:
            ProtocolTag: l'étiquette effectivement en cache (la première écrite)
        """
        if not self._valid(address):
            return ProtocolTag.UNKNOWN
        if self._slots[address] is None:
            self._slots[address] = tag
            logger.debug("Pair %s enregistré comme %s", address, tag.value)
        return self._slots[address]

    def resolve(self, host) -> ProtocolTag:
        """
        Résolution paresseuse : interroge le routeur du pair au premier contact,
        puis sert la valeur en cache.

        Args:
            host (Host): nœud pair
        """
        if host.address in self:
            return self._slots[host.address]
        return self.remember(host.address, protocol_tag_of(host.router))
