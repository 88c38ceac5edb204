# models/host.py
import numpy as np


class Host:
    """
    Représente un nœud (hôte) du réseau opportuniste.

    Le moteur possède l'hôte ; les routeurs ne font que lire son adresse et sa
    position.
    """

    def __init__(self, address, router=None, x=0.0, y=0.0, group_id='n'):
        """
        Constructeur d'un objet Host

        Args:
            address (int): adresse du nœud (obligatoire), de 0 à nrofHosts - 1
            router (ActiveRouter, optional): routeur attaché au nœud. Par défaut None.
            x (float, optional): coordonnée x du nœud. Par défaut 0.0.
            y (float, optional): coordonnée y du nœud. Par défaut 0.0.
            group_id (str, optional): préfixe du nom du nœud. Par défaut 'n'.
        """
        self.address = int(address)
        self.pos = np.array([float(x), float(y)], dtype=float)
        self.group_id = group_id
        self.connections = []  # Connexions actives de ce nœud
        self.router = None
        if router is not None:
            self.set_router(router)

    def __str__(self):
        """
        Descripteur de l'objet Host

        Returns:
            str: nom du nœud (préfixe de groupe + adresse)
        """
        return f"{self.group_id}{self.address}"

    def __repr__(self):
        x, y = self.pos
        return f"Host({self}, ({x:.1f},{y:.1f}), {type(self.router).__name__})"

    #*************** Opérations courantes ****************
    def set_router(self, router):
        """
        Attache un routeur au nœud et l'initialise.

        Args:
            router (ActiveRouter): le routeur à attacher.
        """
        self.router = router
        router.init(self)

    @property
    def location(self):
        """Copie de la position courante (les routeurs ne la modifient jamais)."""
        return self.pos.copy()

    def set_location(self, x, y):
        self.pos = np.array([float(x), float(y)], dtype=float)

    def distance_to(self, other):
        """
        Calcule la distance euclidienne entre deux nœuds.

        Args:
            other (Host): le nœud avec lequel calculer la distance.

        Returns:
            float: la distance euclidienne entre les deux nœuds.
        """
        return float(np.linalg.norm(self.pos - other.pos))

    #*************** Connexions ****************
    def add_connection(self, con):
        if con not in self.connections:
            self.connections.append(con)

    def remove_connection(self, con):
        if con in self.connections:
            self.connections.remove(con)

    def connection_to(self, other):
        """
        Retourne la connexion active vers un autre nœud, ou None.

        Args:
            other (Host): le nœud pair.
        """
        for con in self.connections:
            if con.get_other_node(self) is other:
                return con
        return None
