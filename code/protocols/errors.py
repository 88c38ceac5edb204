#!/usr/bin/env python3
# protocols/errors.py
import logging

logger = logging.getLogger(__name__)


class RoutingError(Exception):
    """Erreur du moteur de routage."""


class RoutingInvariantError(RoutingError):
    """Violation d'un invariant interne (nombre de copies, table incohérente...)."""


def check_invariant(context, condition: bool, message: str) -> bool:
    """
    Vérifie un invariant interne.

    En mode strict (tests, développement) une violation lève une erreur ; sinon
    elle est journalisée et l'appelant ignore simplement le candidat.

    Args:
        context (RunContext): contexte de l'exécution (porte le mode strict)
        condition (bool): invariant à vérifier
        message (str): description de la violation

    Returns:
        bool: True si l'invariant est respecté
    """
    if condition:
        return True
    if context is None or context.strict:
        raise RoutingInvariantError(message)
    logger.debug("Invariant violé (ignoré): %s", message)
    return False
