#!/usr/bin/env python3
# protocols/__init__.py
"""
Package des protocoles DTN.

Chaque routeur prend une décision de transfert locale à chaque contact.

Routeurs disponibles:
- ActiveRouter: moteur commun (tampon, transferts, livraison)
- ProphetRouter: PRoPHET (prédictibilités de livraison, vieillissement, transitivité)
- SprayAndWaitRouter / SprayAndWaitUtilityRouter: budget de copies (binaire ou source)
- ProphetPtuRouter / SnwPtuRouter: traduction entre PRoPHET et Spray-and-Wait
- LucidRouter / LucidProbabilisticRouter: réplication limitée à une zone géographique
- SeerRouter: recuit simulé sur la température des messages
"""

from protocols.base import ActiveRouter
from protocols.lucid import LucidRouter, LucidProbabilisticRouter
from protocols.prophet import ProphetRouter
from protocols.ptu import ProphetPtuRouter, SnwPtuRouter
from protocols.seer import SeerRouter
from protocols.spray_and_wait import SprayAndWaitRouter, SprayAndWaitUtilityRouter
from protocols.tags import ProtocolTag

__all__ = [
    'ActiveRouter', 'ProtocolTag',
    'ProphetRouter', 'SprayAndWaitRouter', 'SprayAndWaitUtilityRouter',
    'ProphetPtuRouter', 'SnwPtuRouter',
    'LucidRouter', 'LucidProbabilisticRouter', 'SeerRouter',
]
