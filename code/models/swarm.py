# models/swarm.py
import logging

import numpy as np
import networkx as nx

from models.connection import Connection

logger = logging.getLogger(__name__)


class Swarm:
    """
    Ensemble des nœuds d'une simulation et de leurs contacts.

    La Swarm détecte les contacts (distance <= portée radio), crée et détruit
    les connexions, et prévient les routeurs des deux extrémités.
    """

    def __init__(self, context, transmit_range=0, transmit_speed=1, hosts=None):
        """
        Constructeur d'un objet Swarm

        Args:
            context (RunContext): contexte de l'exécution (horloge, écouteurs)
            transmit_range (float, optional): distance maximale entre deux nœuds pour établir une connexion. Par défaut 0.
            transmit_speed (float, optional): débit des connexions (octets/s). Par défaut 1.
            hosts (list, optional): liste des objets Host de l'essaim. Par défaut None.
        """
        self.context = context
        self.transmit_range = transmit_range
        self.transmit_speed = transmit_speed
        self.hosts = hosts if hosts else []
        self.connections = {}  # (adresse min, adresse max) -> Connection

    def __str__(self):
        """
        Descripteur d'un objet Swarm

        Returns:
            str: description textuelle de l'essaim
        """
        nb_hosts = len(self.hosts)
        return f"Essaim avec {nb_hosts} nœud{'s' if nb_hosts > 1 else ''}, portée {self.transmit_range}"

    @staticmethod
    def _key(h1, h2):
        return (min(h1.address, h2.address), max(h1.address, h2.address))

    #*************** Opérations courantes ***************
    def positions(self):
        return np.array([host.pos for host in self.hosts], dtype=float).reshape(len(self.hosts), 2)

    def distance_matrix(self):
        """
        Calcule la matrice des distances euclidiennes de l'essaim.

        Returns:
            np.ndarray: matrice (n, n) des distances, indexée dans l'ordre de self.hosts
        """
        pos = self.positions()
        diff = pos[:, None, :] - pos[None, :, :]
        return np.sqrt((diff ** 2).sum(axis=-1))

    def neighbor_matrix(self, transmit_range=None):
        """
        Calcule la matrice de voisinage de l'essaim.
        Si deux nœuds sont à portée, alors matrix[i][j] vaut True.

        Args:
            transmit_range (float, optional): la portée radio. Par défaut celle de l'essaim.
        """
        if transmit_range is None:
            transmit_range = self.transmit_range
        matrix = self.distance_matrix() <= transmit_range
        np.fill_diagonal(matrix, False)
        return matrix

    def is_connected(self, h1, h2) -> bool:
        return self._key(h1, h2) in self.connections

    #*************** Contacts ***************
    def connect(self, h1, h2):
        """
        Début de contact entre deux nœuds.

        Returns:
            Connection: la connexion créée (ou existante)
        """
        key = self._key(h1, h2)
        if key in self.connections:
            return self.connections[key]
        first, second = (h1, h2) if h1.address < h2.address else (h2, h1)
        con = Connection(first, second, self.transmit_speed)
        self.connections[key] = con
        first.add_connection(con)
        second.add_connection(con)
        first.router.changed_connection(con)
        second.router.changed_connection(con)
        self.context.notify_connection('hosts_connected', first, second)
        return con

    def disconnect(self, h1, h2):
        """
        Fin de contact entre deux nœuds : le transfert en cours est interrompu.
        """
        con = self.connections.pop(self._key(h1, h2), None)
        if con is None:
            return
        con.abort_transfer(self.context.now)
        con.set_up_state(False)
        con.from_node.remove_connection(con)
        con.to_node.remove_connection(con)
        con.from_node.router.changed_connection(con)
        con.to_node.router.changed_connection(con)
        self.context.notify_connection('hosts_disconnected', con.from_node, con.to_node)

    def update_contacts(self):
        """
        Met à jour les connexions selon les positions courantes.

        Returns:
            tuple: (nombre de contacts ouverts, nombre de contacts fermés)
        """
        neighbors = self.neighbor_matrix()
        ups, downs = 0, 0
        n = len(self.hosts)
        for i in range(n):
            for j in range(i + 1, n):
                hi, hj = self.hosts[i], self.hosts[j]
                connected = self.is_connected(hi, hj)
                if neighbors[i, j] and not connected:
                    self.connect(hi, hj)
                    ups += 1
                elif not neighbors[i, j] and connected:
                    self.disconnect(hi, hj)
                    downs += 1
        if ups or downs:
            logger.debug("t=%.1f: %d contacts ouverts, %d fermés", self.context.now, ups, downs)
        return ups, downs

    #*************** Métriques ******************
    def to_nxgraph(self):
        """
        Convertit les contacts courants en un graphe NetworkX.

        Returns:
            nx.Graph: le graphe converti.
        """
        G = nx.Graph()
        G.add_nodes_from(host.address for host in self.hosts)
        G.add_edges_from(self.connections.keys())
        return G

    def connected_components(self):
        """
        Composantes connexes du graphe des contacts courants.

        Returns:
            list(list(int)): liste des adresses de nœuds pour chaque composante connexe.
        """
        return [sorted(c) for c in nx.connected_components(self.to_nxgraph())]

    def degree(self):
        """
        Calcule le degré (nombre de contacts courants) de chaque nœud de l'essaim.

        Returns:
            list(int): liste des degrés des nœuds.
        """
        return [len(host.connections) for host in self.hosts]
