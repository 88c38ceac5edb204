# simulation/reports.py
"""
Rapports de simulation, abonnés aux événements du contexte d'exécution.

- MessageStatsReport : statistiques globales des messages (livraison, latence, overhead)
- LocationDeviationReport : écart de position des transferts LUCID par rapport à l'origine
- ContactGraphReport : graphe cumulé des contacts (NetworkX)
"""
import math
import statistics

import networkx as nx
import numpy as np
import pandas as pd
from tabulate import tabulate

from protocols.lucid import ORIG_LOCATION_PROPERTY


class MessageListener:
    """Interface des écouteurs d'événements de messages (méthodes sans effet par défaut)."""

    def new_message(self, m):
        pass

    def message_transfer_started(self, m, from_host, to_host):
        pass

    def message_transferred(self, m, from_host, to_host, first_delivery):
        pass

    def message_transfer_aborted(self, m, from_host, to_host):
        pass

    def message_deleted(self, m, host, dropped):
        pass


class ConnectionListener:
    """Interface des écouteurs de contacts."""

    def hosts_connected(self, h1, h2):
        pass

    def hosts_disconnected(self, h1, h2):
        pass


def _mean(values):
    return float(np.mean(values)) if values else float('nan')


def summary_table(summary: dict, table_format: str = 'pretty') -> str:
    """
    Met en forme un résumé (métrique -> valeur) sous forme de tableau.
    """
    rows = []
    for metric, value in summary.items():
        if isinstance(value, float):
            value = 'N/A' if math.isnan(value) else f"{value:.4f}"
        rows.append([metric, value])
    return tabulate(rows, headers=['Métrique', 'Valeur'], tablefmt=table_format)


class MessageStatsReport(MessageListener):
    """
    Statistiques des messages : créés, transferts démarrés, relayés, interrompus,
    abandonnés, retirés, livrés ; probabilité de livraison, overhead, latence et
    nombre de sauts des livraisons.
    """

    def __init__(self):
        self.creation_times = {}
        self.created = 0
        self.started = 0
        self.relayed = 0
        self.aborted = 0
        self.dropped = 0
        self.removed = 0
        self.delivered = 0
        self.latencies = []
        self.hop_counts = []

    def new_message(self, m):
        self.creation_times[m.id] = m.creation_time
        self.created += 1

    def message_transfer_started(self, m, from_host, to_host):
        self.started += 1

    def message_transferred(self, m, from_host, to_host, first_delivery):
        self.relayed += 1
        if first_delivery:
            self.delivered += 1
            self.latencies.append(to_host.router.now - self.creation_times.get(m.id, m.creation_time))
            self.hop_counts.append(m.hop_count)

    def message_transfer_aborted(self, m, from_host, to_host):
        self.aborted += 1

    def message_deleted(self, m, host, dropped):
        if dropped:
            self.dropped += 1
        else:
            self.removed += 1

    @property
    def delivery_prob(self) -> float:
        return self.delivered / self.created if self.created else 0.0

    @property
    def overhead_ratio(self) -> float:
        if not self.delivered:
            return float('nan')
        return (self.relayed - self.delivered) / self.delivered

    def summary(self) -> dict:
        return {
            'created': self.created,
            'started': self.started,
            'relayed': self.relayed,
            'aborted': self.aborted,
            'dropped': self.dropped,
            'removed': self.removed,
            'delivered': self.delivered,
            'delivery_prob': self.delivery_prob,
            'overhead_ratio': self.overhead_ratio,
            'latency_avg': _mean(self.latencies),
            'latency_med': float(statistics.median(self.latencies)) if self.latencies else float('nan'),
            'hopcount_avg': _mean(self.hop_counts),
        }

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([self.summary()])


class LocationDeviationReport(MessageListener):
    """
    Écart moyen entre la position d'origine d'un message (origLocation) et la
    position du récepteur (pld_receiver) ou de l'émetteur (pld_sender) à chaque
    transfert. Seuls les messages LUCID portent une position d'origine.
    """

    def __init__(self):
        self.receiver_deviations = []
        self.sender_deviations = []

    def message_transferred(self, m, from_host, to_host, first_delivery):
        origin = m.get_property(ORIG_LOCATION_PROPERTY)
        if origin is None:
            return
        self.receiver_deviations.append(float(np.linalg.norm(to_host.location - origin)))
        self.sender_deviations.append(float(np.linalg.norm(from_host.location - origin)))

    def summary(self) -> dict:
        return {
            'transfers': len(self.receiver_deviations),
            'pld_receiver': _mean(self.receiver_deviations),
            'pld_sender': _mean(self.sender_deviations),
        }


class ContactGraphReport(ConnectionListener):
    """
    Graphe cumulé des contacts : une arête par couple de nœuds qui se sont
    rencontrés, pondérée par le nombre de contacts.
    """

    def __init__(self):
        self.graph = nx.Graph()
        self.contacts = 0

    def hosts_connected(self, h1, h2):
        self.contacts += 1
        if self.graph.has_edge(h1.address, h2.address):
            self.graph[h1.address][h2.address]['weight'] += 1
        else:
            self.graph.add_edge(h1.address, h2.address, weight=1)

    def done(self, simulation):
        # Les nœuds jamais rencontrés figurent aussi dans le graphe
        self.graph.add_nodes_from(host.address for host in simulation.hosts)

    def summary(self) -> dict:
        G = self.graph
        n = G.number_of_nodes()
        return {
            'hosts_met': sum(1 for _, d in G.degree() if d > 0),
            'contacts': self.contacts,
            'mean_degree': sum(d for _, d in G.degree()) / n if n > 0 else 0.0,
            'components': nx.number_connected_components(G) if n > 0 else 0,
            'clustering': nx.average_clustering(G) if n > 0 else 0.0,
        }
