#!/usr/bin/env python3
# protocols/tags.py
"""
Identité protocolaire des routeurs et familles de protocoles.

Le comportement d'un routeur envers un pair dépend uniquement de l'étiquette
du pair, résolue une fois au premier contact (voir protocols/peer_cache.py).
"""
from enum import Enum


class ProtocolTag(Enum):
    """Étiquette de la famille de protocole d'un routeur."""
    PROPHET = 'prophet'
    SPRAY_AND_WAIT = 'spray_and_wait'
    SPRAY_AND_WAIT_UTILITY = 'spray_and_wait_utility'
    PROPHET_PTU = 'prophet_ptu'
    SNW_PTU = 'snw_ptu'
    LUCID = 'lucid'
    LUCID_PROBABILISTIC = 'lucid_probabilistic'
    SEER = 'seer'
    UNKNOWN = 'unknown'


# Routeurs qui maintiennent une table de prédictibilité consultable par leurs pairs
PREDICTABILITY_PROTOCOLS = frozenset({
    ProtocolTag.PROPHET, ProtocolTag.PROPHET_PTU, ProtocolTag.SNW_PTU,
})
# Routeurs purement à budget de copies (aucune table de prédictibilité)
PURE_BUDGET_PROTOCOLS = frozenset({ProtocolTag.SPRAY_AND_WAIT, ProtocolTag.SPRAY_AND_WAIT_UTILITY})
# Émetteurs dont les messages portent un budget de copies vivant
BUDGET_SENDER_PROTOCOLS = PURE_BUDGET_PROTOCOLS | {ProtocolTag.SNW_PTU}
# Unités de traduction
TRANSLATION_PROTOCOLS = frozenset({ProtocolTag.PROPHET_PTU, ProtocolTag.SNW_PTU})
# Routeurs capables de consommer un budget de copies
BUDGET_AWARE_PROTOCOLS = PURE_BUDGET_PROTOCOLS | TRANSLATION_PROTOCOLS
LUCID_PROTOCOLS = frozenset({ProtocolTag.LUCID, ProtocolTag.LUCID_PROBABILISTIC})
SEER_PROTOCOLS = frozenset({ProtocolTag.SEER})
