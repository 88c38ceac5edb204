#!/usr/bin/env python3
# protocols/replica_budget.py
"""
Budget de copies des messages (famille Spray-and-Wait).

Principe:
1. Phase Spray: à la création, le message reçoit L copies (propriété du message).
   Lors d'un transfert, l'émetteur et le récepteur se partagent le budget.
   - Mode binaire: l'émetteur garde floor(n/2), le récepteur reçoit ceil(n/2).
   - Mode linéaire: l'émetteur décrémente de 1, le récepteur reçoit 1 seule copie.
2. Phase Wait: dès qu'un nœud n'a plus qu'une copie, il attend de rencontrer
   directement la destination (chemin de livraison directe du routeur).

Un message sans budget n'appartient pas à ce protocole : le suivi l'ignore.

Référence: Thrasyvoulos Spyropoulos, Konstantinos Psounis, Cauligi S. Raghavendra,
"Spray and Wait: An Efficient Routing Scheme for Intermittently Connected Mobile Networks"
"""
import math

# Clé de la propriété portée par le message
MSG_COUNT_PROPERTY = 'SprayAndWaitRouter.copies'


class ReplicaBudgetTracker:
    """
    Suivi du nombre de copies restantes, stocké dans le sac de propriétés des messages.
    """

    def __init__(self, initial_copies: int, binary: bool = True):
        """
        Args:
            initial_copies (int): nombre initial de copies L (au moins 1)
            binary (bool): True pour Binary Spray and Wait, False pour le mode linéaire
        """
        if initial_copies < 1:
            raise ValueError(f"nrofCopies doit être au moins 1 (reçu {initial_copies})")
        self.initial_copies = int(initial_copies)
        self.binary = binary

    def __str__(self):
        mode = "Binary" if self.binary else "Linear"
        return f"{mode} Spray and Wait (L={self.initial_copies})"

    @staticmethod
    def copies_of(m):
        """Nombre de copies porté par le message, None s'il n'en porte pas."""
        return m.get_property(MSG_COUNT_PROPERTY)

    def is_budget_message(self, m) -> bool:
        return self.copies_of(m) is not None

    def initialize(self, m, copies: int = None):
        """
        Attache le budget initial à un message qui n'en porte pas encore.

        Args:
            m (Message): le message
            copies (int, optional): budget à attacher. Par défaut L.
        """
        if self.is_budget_message(m):
            return
        m.add_property(MSG_COUNT_PROPERTY, int(self.initial_copies if copies is None else copies))

    def has_budget(self, m) -> bool:
        """
        Un message peut encore être diffusé ssi il porte plus d'une copie.
        """
        copies = self.copies_of(m)
        return copies is not None and copies > 1

    def sender_share(self, copies: int) -> int:
        # En mode binaire, l'émetteur garde floor(n/2) copies
        return copies // 2 if self.binary else copies - 1

    def receiver_share(self, copies: int) -> int:
        # En mode binaire, le récepteur reçoit ceil(n/2) copies, sinon une seule
        return int(math.ceil(copies / 2.0)) if self.binary else 1

    def on_send(self, m) -> bool:
        """
        Réduit le budget de la copie de l'émetteur après un transfert réussi.

        Returns:
            bool: True si le message portait un budget
        """
        copies = self.copies_of(m)
        if copies is None:
            return False
        m.update_property(MSG_COUNT_PROPERTY, max(1, self.sender_share(copies)))
        return True

    def on_receive(self, m) -> bool:
        """
        Fixe la part du récepteur sur la copie reçue. La copie reçue porte le
        budget de l'émetteur au moment où le transfert a démarré.

        Returns:
            bool: True si le message portait un budget
        """
        copies = self.copies_of(m)
        if copies is None:
            return False
        m.update_property(MSG_COUNT_PROPERTY, self.receiver_share(copies))
        return True
