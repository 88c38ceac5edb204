# data/loader.py
"""
Traces de positions des nœuds.

Format commun (format long, une ligne par échantillon) :
    time, host, x, y
Les positions entre deux échantillons sont interpolées linéairement.
"""
import logging

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

TRACE_COLUMNS = ['time', 'host', 'x', 'y']


def load_traces(path):
    """
    Charge un fichier CSV de traces de positions.

    Args:
        path: Chemin du fichier CSV (colonnes time, host, x, y)

    Returns:
        pd.DataFrame: traces triées par nœud puis par temps
    """
    logger.info("### Importation des traces: %s ###", path)
    df = pd.read_csv(path, header=0)
    missing = [c for c in TRACE_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Colonnes manquantes dans {path}: {', '.join(missing)}")
    df = df[TRACE_COLUMNS].astype({'time': float, 'host': int, 'x': float, 'y': float})
    return df.sort_values(['host', 'time']).reset_index(drop=True)


def random_walk_traces(nrof_hosts, end_time, world_size=(1000, 1000), speed=(0.5, 1.5),
                       sample_interval=10.0, seed=0):
    """
    Génère une marche aléatoire reproductible pour chaque nœud.

    À chaque échantillon, le nœud choisit une direction uniforme et une vitesse
    dans l'intervalle donné ; il rebondit sur les bords du monde.

    Args:
        nrof_hosts: Nombre de nœuds
        end_time: Durée simulée (secondes)
        world_size: Dimensions (largeur, hauteur) du monde
        speed: Intervalle (min, max) de vitesse en m/s
        sample_interval: Pas entre deux échantillons (secondes)
        seed: Graine du générateur

    Returns:
        pd.DataFrame: traces au format (time, host, x, y)
    """
    rng = np.random.default_rng(seed)
    width, height = float(world_size[0]), float(world_size[1])
    times = np.arange(0.0, float(end_time) + sample_interval, sample_interval)
    n_steps = len(times)

    pos = np.empty((nrof_hosts, n_steps, 2))
    pos[:, 0, 0] = rng.uniform(0, width, nrof_hosts)
    pos[:, 0, 1] = rng.uniform(0, height, nrof_hosts)
    angles = rng.uniform(0, 2 * np.pi, (nrof_hosts, n_steps - 1))
    speeds = rng.uniform(speed[0], speed[1], (nrof_hosts, n_steps - 1))
    steps = np.stack([np.cos(angles), np.sin(angles)], axis=-1) * (speeds * sample_interval)[..., None]
    for k in range(1, n_steps):
        nxt = pos[:, k - 1] + steps[:, k - 1]
        # Rebond sur les bords du monde
        nxt[:, 0] = np.abs(nxt[:, 0])
        nxt[:, 1] = np.abs(nxt[:, 1])
        nxt[:, 0] = np.where(nxt[:, 0] > width, 2 * width - nxt[:, 0], nxt[:, 0])
        nxt[:, 1] = np.where(nxt[:, 1] > height, 2 * height - nxt[:, 1], nxt[:, 1])
        pos[:, k] = nxt

    return pd.DataFrame({
        'time': np.tile(times, nrof_hosts),
        'host': np.repeat(np.arange(nrof_hosts), n_steps),
        'x': pos[:, :, 0].ravel(),
        'y': pos[:, :, 1].ravel(),
    })


class TraceMovement:
    """
    Fournit la position de chaque nœud à un instant donné à partir des traces.
    """

    def __init__(self, traces):
        """
        Args:
            traces (pd.DataFrame): traces au format (time, host, x, y)
        """
        self._tracks = {}
        for host, group in traces.groupby('host'):
            group = group.sort_values('time')
            self._tracks[int(host)] = (group['time'].to_numpy(),
                                       group['x'].to_numpy(),
                                       group['y'].to_numpy())

    def __len__(self):
        return len(self._tracks)

    def hosts(self):
        return sorted(self._tracks)

    def position_at(self, host, t):
        """
        Position (x, y) d'un nœud à l'instant t (interpolation linéaire, bornée
        aux extrémités de la trace).
        """
        times, xs, ys = self._tracks[host]
        return float(np.interp(t, times, xs)), float(np.interp(t, times, ys))

    def move_hosts(self, hosts, t):
        """Place chaque nœud présent dans les traces à sa position à l'instant t."""
        for host in hosts:
            if host.address in self._tracks:
                host.set_location(*self.position_at(host.address, t))
