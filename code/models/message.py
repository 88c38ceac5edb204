# models/message.py
"""
Message transporté par les nœuds du réseau opportuniste.

L'identité d'un message (id, source, destination, taille, date de création)
est immuable ; son sac de propriétés et son chemin sont modifiés à chaque saut.
Les protocoles y rangent leurs métadonnées (nombre de copies, température,
positions de référence) sans connaître le reste du message.
"""
import copy


class Message:
    """
    Représente un message DTN et son sac de propriétés.
    """

    def __init__(self, msg_id: str, source, destination, size: int,
                 creation_time: float = 0.0, ttl: float = None):
        """
        Constructeur d'un objet Message

        Args:
            msg_id (str): identifiant unique du message
            source (Host): nœud qui a créé le message
            destination (Host): nœud destinataire final
            size (int): taille en octets
            creation_time (float, optional): date de création (secondes simulées). Par défaut 0.0.
            ttl (float, optional): durée de vie initiale en minutes. None = pas d'expiration.
        """
        self.id = str(msg_id)
        self.source = source
        self.destination = destination
        self.size = int(size)
        self.creation_time = float(creation_time)
        self.initial_ttl = ttl
        self.receive_time = float(creation_time)
        self.hops = [source]
        self.properties = {}

    def __str__(self):
        return self.id

    def __repr__(self):
        return f"Message({self.id}, {self.source} -> {self.destination}, {self.size} o)"

    #*************** Chemin ****************
    @property
    def hop_count(self) -> int:
        """Nombre de sauts effectués depuis la source."""
        return len(self.hops) - 1

    def add_node_on_path(self, host):
        self.hops.append(host)

    #*************** Durée de vie ****************
    def ttl_remaining(self, now: float) -> float:
        """
        Durée de vie restante en minutes (infinie si le message n'expire pas).

        Args:
            now (float): temps simulé courant (secondes)
        """
        if self.initial_ttl is None:
            return float('inf')
        return (self.initial_ttl * 60 - (now - self.creation_time)) / 60.0

    def residual_ttl_seconds(self, now: float) -> float:
        """Durée de vie restante exprimée en secondes."""
        return self.ttl_remaining(now) * 60

    #*************** Sac de propriétés ****************
    def has_property(self, key: str) -> bool:
        return key in self.properties

    def get_property(self, key: str, default=None):
        return self.properties.get(key, default)

    def add_property(self, key: str, value):
        """
        Ajoute une propriété qui ne doit pas déjà exister.

        Raises:
            KeyError: si la clé est déjà présente dans le sac
        """
        if key in self.properties:
            raise KeyError(f"La propriété {key} existe déjà pour le message {self.id}")
        self.properties[key] = value

    def update_property(self, key: str, value):
        self.properties[key] = value

    def remove_property(self, key: str):
        """Supprime une propriété si elle est présente (sans erreur sinon)."""
        return self.properties.pop(key, None)

    #*************** Copie ****************
    def replicate(self) -> 'Message':
        """
        Crée une réplique du message : même identité, sac de propriétés et
        chemin copiés pour que le récepteur puisse les modifier librement.

        Returns:
            Message: la réplique
        """
        m = Message(self.id, self.source, self.destination, self.size,
                    self.creation_time, self.initial_ttl)
        m.receive_time = self.receive_time
        m.hops = list(self.hops)
        m.properties = copy.deepcopy(self.properties)
        return m
