#!/usr/bin/env python3
# protocols/predictability.py
"""
Table des prédictibilités de livraison (famille PRoPHET).

Principe:
1. Chaque routeur maintient P(a,b), estimation de la probabilité que a puisse
   livrer un message à b.
2. Cette métrique est mise à jour selon trois règles:
   - Rencontre directe: P(a,b) = P(a,b)_ancien + (1 - P(a,b)_ancien) * P_init
   - Vieillissement: P(a,b) = P(a,b)_ancien * γ^k où k est le nombre d'unités de
     temps écoulées depuis le dernier vieillissement
   - Transitivité: P(a,c) = P(a,c)_ancien + (1 - P(a,c)_ancien) * P(a,b) * P(b,c) * β
3. Les valeurs sont toujours vieillies jusqu'à l'instant courant avant d'être
   lues ou combinées.

Référence: Lindgren, A., Doria, A., & Schelén, O. (2003).
"Probabilistic routing in intermittently connected networks"
ACM SIGMOBILE mobile computing and communications review, 7(3), 19-20.
"""
import math

# Constante d'initialisation lors d'une rencontre
P_INIT = 0.75
# Facteur de transitivité par défaut
DEFAULT_BETA = 0.25
# Facteur de vieillissement par défaut
GAMMA = 0.98


def _clamp(p: float) -> float:
    # Garantir que la valeur reste dans l'intervalle [0, 1]
    if math.isnan(p):
        return 0.0
    return min(1.0, max(0.0, p))


class DeliveryPredictabilityStore:
    """
    Prédictibilités de livraison d'un routeur, indexées par adresse de nœud.

    Une entrée absente vaut 0.0.
    """

    def __init__(self, clock, seconds_in_unit: float, beta: float = DEFAULT_BETA,
                 gamma: float = GAMMA, p_init: float = P_INIT):
        """
        Args:
            clock (SimClock): horloge simulée de l'exécution
            seconds_in_unit (float): nombre de secondes dans une unité de vieillissement
            beta (float): facteur de transitivité (entre 0 et 1)
            gamma (float): facteur de vieillissement (entre 0 et 1)
            p_init (float): probabilité d'initialisation lors d'une rencontre (entre 0 et 1)
        """
        if seconds_in_unit <= 0:
            raise ValueError(f"secondsInTimeUnit doit être positif (reçu {seconds_in_unit})")
        if not 0.0 <= beta <= 1.0:
            raise ValueError(f"beta doit être dans [0, 1] (reçu {beta})")
        if not 0.0 < gamma <= 1.0:
            raise ValueError(f"gamma doit être dans ]0, 1] (reçu {gamma})")
        if not 0.0 <= p_init <= 1.0:
            raise ValueError(f"P_init doit être dans [0, 1] (reçu {p_init})")
        self.clock = clock
        self.seconds_in_unit = float(seconds_in_unit)
        self.beta = beta
        self.gamma = gamma
        self.p_init = p_init
        self._preds = {}
        self.last_age_update = 0.0

    def __len__(self):
        return len(self._preds)

    def __contains__(self, address):
        return address in self._preds

    def _aging_multiplier(self) -> float:
        k = (self.clock.time - self.last_age_update) / self.seconds_in_unit
        if k <= 0:
            return 1.0
        return self.gamma ** k

    def age(self):
        """
        Vieillit toutes les entrées jusqu'à l'instant courant.
        k = 0 (aucun temps écoulé) ne modifie rien.
        """
        if self.clock.time <= self.last_age_update:
            return
        mult = self._aging_multiplier()
        for address, p in self._preds.items():
            self._preds[address] = _clamp(p * mult)
        self.last_age_update = self.clock.time

    def predictability_for(self, address: int) -> float:
        """
        Retourne la prédictibilité (vieillie) pour un nœud, 0.0 si inconnue.

        Args:
            address (int): adresse du nœud
        """
        self.age()
        return self._preds.get(address, 0.0)

    def on_contact_up(self, address: int):
        """
        Mise à jour directe lors d'une rencontre avec un nœud.
        P(a,b) = P(a,b)_old + (1 - P(a,b)_old) * P_INIT
        """
        old = self.predictability_for(address)
        self._preds[address] = _clamp(old + (1 - old) * self.p_init)

    def merge_transitive(self, peer_address: int, peer_table: dict, own_address: int):
        """
        Mise à jour transitive à partir de la table (déjà vieillie) du pair rencontré.
        P(a,c) = P(a,c)_old + (1 - P(a,c)_old) * P(a,b) * P(b,c) * BETA

        Args:
            peer_address (int): adresse du pair b
            peer_table (dict): prédictibilités du pair, adresse -> P(b,c)
            own_address (int): adresse du nœud local, jamais ajoutée à sa propre table
        """
        p_peer = self.predictability_for(peer_address)  # P(a,b)
        for address, p_peer_c in peer_table.items():
            if address == own_address:
                continue
            old = self.predictability_for(address)  # P(a,c)_old
            self._preds[address] = _clamp(old + (1 - old) * p_peer * p_peer_c * self.beta)

    def peek(self, address: int) -> float:
        """
        Lecture par un routeur pair : valeur vieillie jusqu'à l'instant courant,
        sans écrire dans la table.
        """
        return _clamp(self._preds.get(address, 0.0) * self._aging_multiplier())

    def delivery_preds(self) -> dict:
        """
        Copie de la table, vieillie jusqu'à l'instant courant.
        Les pairs la lisent sans modifier la table du propriétaire.
        """
        mult = self._aging_multiplier()
        return {address: _clamp(p * mult) for address, p in self._preds.items()}
