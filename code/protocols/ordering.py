#!/usr/bin/env python3
# protocols/ordering.py
"""
Ordre de départage commun à tous les protocoles qui classent des couples
(message, connexion) avant de tenter les transferts.

Clé primaire : la valeur côté pair propre au protocole (probabilité de
livraison, utilité...), la plus grande en premier. En cas d'égalité, le mode
de file d'attente du routeur décide (FIFO ou pseudo-aléatoire reproductible).
L'adresse du pair et l'identifiant du message complètent la clé pour obtenir
un ordre total qui ne dépend jamais de l'ordre de parcours des conteneurs.
"""
import math
import zlib
from functools import cmp_to_key

QUEUE_MODE_FIFO = 'fifo'
QUEUE_MODE_RANDOM = 'random'
QUEUE_MODES = (QUEUE_MODE_FIFO, QUEUE_MODE_RANDOM)


def queue_mode_key(mode: str, seed: int = 0):
    """
    Construit la clé de tri d'un message selon le mode de file d'attente.

    Args:
        mode (str): 'fifo' (ordre de réception) ou 'random' (ordre pseudo-aléatoire stable)
        seed (int): graine de l'exécution, utilisée par le mode 'random'

    Returns:
        callable: fonction message -> clé comparable
    """
    if mode == QUEUE_MODE_FIFO:
        return lambda m: (m.receive_time, m.id)
    if mode == QUEUE_MODE_RANDOM:
        return lambda m: (zlib.crc32(f"{seed}:{m.id}".encode('utf-8')), m.id)
    raise ValueError(f"Mode de file d'attente inconnu: {mode!r} (attendu: {', '.join(QUEUE_MODES)})")


def compare_by_queue_mode(m1, m2, key) -> int:
    """Comparateur à trois issues sur la clé de file d'attente."""
    k1, k2 = key(m1), key(m2)
    if k1 < k2:
        return -1
    if k1 > k2:
        return 1
    return 0


def _safe_value(value) -> float:
    # Une utilité NaN est traitée comme nulle pour garder un ordre total
    if value is None or math.isnan(value):
        return 0.0
    return float(value)


def candidate_comparator(peer_value, queue_key, host):
    """
    Construit le comparateur de couples (message, connexion).

    Args:
        peer_value (callable): (message, connexion) -> valeur côté pair
        queue_key (callable): clé de file d'attente des messages
        host (Host): nœud local, pour identifier le pair de chaque connexion

    Returns:
        callable: comparateur à trois issues
    """
    def compare(t1, t2):
        (m1, c1), (m2, c2) = t1, t2
        p1 = _safe_value(peer_value(m1, c1))
        p2 = _safe_value(peer_value(m2, c2))
        # La plus grande valeur passe en premier
        if p2 - p1 < 0:
            return -1
        if p2 - p1 > 0:
            return 1
        # Égalité : le mode de file d'attente décide
        order = compare_by_queue_mode(m1, m2, queue_key)
        if order != 0:
            return order
        a1 = c1.get_other_node(host).address
        a2 = c2.get_other_node(host).address
        return (a1 > a2) - (a1 < a2)

    return compare


def sort_candidates(candidates, peer_value, queue_key, host) -> list:
    """
    Trie les couples (message, connexion) selon l'ordre de départage commun.

    Returns:
        list: nouvelle liste triée (l'entrée n'est pas modifiée)
    """
    return sorted(candidates, key=cmp_to_key(candidate_comparator(peer_value, queue_key, host)))
