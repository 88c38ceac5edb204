# simulation/visualize.py
import os

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import networkx as nx

from config import OUTDIR


def plot_protocol_comparison(aggregated, metric='delivery_prob', output_file=None):
    """
    Génère un diagramme en barres (moyenne ± écart-type) d'une métrique par routeur.

    Args:
        aggregated (pd.DataFrame): résultats agrégés (colonnes router, metric, mean, std)
        metric (str): métrique à tracer
        output_file (str, optional): fichier de sortie. Par défaut OUTDIR/comparison_<metric>.png

    Returns:
        str: chemin du fichier généré
    """
    rows = aggregated[aggregated['metric'] == metric]
    if rows.empty:
        raise ValueError(f"Aucune valeur pour la métrique {metric!r}")
    if output_file is None:
        output_file = os.path.join(OUTDIR, f"comparison_{metric}.png")
    os.makedirs(os.path.dirname(os.path.abspath(output_file)), exist_ok=True)

    plt.figure(figsize=(8, 4))
    plt.bar(rows['router'], rows['mean'], yerr=rows['std'], capsize=4, color='tab:blue', alpha=0.8)
    plt.xticks(rotation=30, ha='right')
    plt.ylabel(metric)
    plt.title(f"Comparaison des routeurs: {metric}")
    plt.grid(True, axis='y')
    plt.tight_layout()
    plt.savefig(output_file)
    plt.close()
    return output_file


def plot_contact_graph(graph, output_file=None):
    """
    Dessine le graphe cumulé des contacts, l'épaisseur des arêtes suivant le
    nombre de contacts.

    Args:
        graph (nx.Graph): graphe produit par ContactGraphReport
        output_file (str, optional): fichier de sortie. Par défaut OUTDIR/contact_graph.png
    """
    if output_file is None:
        output_file = os.path.join(OUTDIR, "contact_graph.png")
    os.makedirs(os.path.dirname(os.path.abspath(output_file)), exist_ok=True)

    weights = [d.get('weight', 1) for _, _, d in graph.edges(data=True)]
    max_weight = max(weights) if weights else 1
    pos = nx.spring_layout(graph, seed=0)

    plt.figure(figsize=(7, 7))
    nx.draw_networkx_nodes(graph, pos, node_size=120, node_color='tab:orange')
    nx.draw_networkx_edges(graph, pos, width=[0.5 + 3 * w / max_weight for w in weights], alpha=0.6)
    nx.draw_networkx_labels(graph, pos, font_size=7)
    plt.title("Graphe des contacts")
    plt.axis('off')
    plt.tight_layout()
    plt.savefig(output_file)
    plt.close()
    return output_file
