# models/connection.py
"""
Connexion (contact) entre deux nœuds.

Une connexion est créée par le moteur au début d'un contact et détruite à sa
fin. Elle transporte au plus un message à la fois ; la durée du transfert est
taille / débit.
"""


class Connection:
    """
    Lien non orienté entre deux nœuds, avec au plus un transfert en cours.
    """

    def __init__(self, from_node, to_node, speed: float):
        """
        Args:
            from_node (Host): nœud qui a initié le contact
            to_node (Host): nœud pair
            speed (float): débit du lien en octets par seconde
        """
        if speed <= 0:
            raise ValueError(f"Le débit d'une connexion doit être positif (reçu {speed})")
        self.from_node = from_node
        self.to_node = to_node
        self.speed = float(speed)
        self.is_up = True
        self.msg_on_fly = None
        self.msg_from_node = None
        self.transfer_start = None

    def __str__(self):
        state = "up" if self.is_up else "down"
        transfer = f" transferring {self.msg_on_fly} from {self.msg_from_node}" if self.msg_on_fly else ""
        return f"{self.from_node}<->{self.to_node} ({state}){transfer}"

    def get_other_node(self, host):
        """
        Retourne le nœud situé à l'autre extrémité de la connexion.

        Args:
            host (Host): l'une des deux extrémités
        """
        if host is self.from_node:
            return self.to_node
        return self.from_node

    def set_up_state(self, state: bool):
        self.is_up = state

    #*************** Transferts ****************
    def is_transferring(self) -> bool:
        return self.msg_on_fly is not None

    def is_ready_for_transfer(self) -> bool:
        return self.is_up and self.msg_on_fly is None

    def get_message(self):
        return self.msg_on_fly

    def start_transfer(self, from_host, message, now: float) -> int:
        """
        Propose une réplique du message au nœud pair.

        Args:
            from_host (Host): nœud émetteur
            message (Message): copie locale de l'émetteur
            now (float): temps simulé courant

        Returns:
            int: code de réception retourné par le routeur pair (0 = accepté)
        """
        replica = message.replicate()
        receiver = self.get_other_node(from_host)
        from_host.router.translate_replica(replica, receiver)
        retval = receiver.router.receive_message(replica, from_host)
        if retval == 0:
            self.msg_on_fly = replica
            self.msg_from_node = from_host
            self.transfer_start = now
        return retval

    def transfer_duration(self) -> float:
        if self.msg_on_fly is None:
            return 0.0
        return self.msg_on_fly.size / self.speed

    def is_message_transferred(self, now: float) -> bool:
        if self.msg_on_fly is None:
            return False
        return now >= self.transfer_start + self.transfer_duration()

    def bytes_transferred(self, now: float) -> int:
        if self.msg_on_fly is None:
            return 0
        return int(min(self.msg_on_fly.size, (now - self.transfer_start) * self.speed))

    def _clear(self):
        self.msg_on_fly = None
        self.msg_from_node = None
        self.transfer_start = None

    def finalize_transfer(self):
        """Termine le transfert en cours et notifie le routeur récepteur."""
        message = self.msg_on_fly
        sender = self.msg_from_node
        if message is None:
            return
        receiver = self.get_other_node(sender)
        self._clear()
        receiver.router.message_transferred(message.id, sender)

    def abort_transfer(self, now: float):
        """Interrompt le transfert en cours (fin de contact) et notifie le récepteur."""
        message = self.msg_on_fly
        sender = self.msg_from_node
        if message is None:
            return
        receiver = self.get_other_node(sender)
        transferred = self.bytes_transferred(now)
        self._clear()
        receiver.router.message_aborted(message.id, sender, transferred)
