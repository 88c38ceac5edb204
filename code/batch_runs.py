#!/usr/bin/env python3
# batch_runs.py
"""
Script d'automatisation des tests par lots des routeurs DTN.

Ce script permet de:
1. Exécuter une simulation par couple (routeur, graine)
2. Collecter les métriques de performance (livraison, latence, overhead...)
3. Calculer des statistiques agrégées (moyenne, écart-type) par routeur
4. Générer un fichier CSV de résultats et, au besoin, un graphique comparatif

Usage:
    python batch_runs.py --routers ProphetRouter SprayAndWaitRouter --runs 10
                         --output-csv ../data_logs/batch.csv [--config scenario.json] [--plot]
"""

import os
import argparse
import time
import logging
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Dict, List

import numpy as np
import pandas as pd
from tqdm import tqdm
from tabulate import tabulate

from config import OUTDIR, SettingsError, load_settings
from simulation.engine import ROUTERS, Simulation
from simulation.reports import MessageStatsReport, LocationDeviationReport

# Configuration du logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)

# Métriques à agréger
METRICS = ['delivery_prob', 'overhead_ratio', 'latency_avg', 'hopcount_avg',
           'delivered', 'created', 'dropped', 'aborted', 'pld_receiver']


def parse_arguments(argv=None):
    """
    Analyse les arguments de ligne de commande.

    Returns:
        argparse.Namespace: Arguments analysés
    """
    parser = argparse.ArgumentParser(description="Tests par lots des routeurs DTN")

    parser.add_argument('--routers', nargs='+', default=sorted(ROUTERS), choices=sorted(ROUTERS),
                        help='Routeurs à tester (par défaut tous)')
    parser.add_argument('--runs', type=int, default=5,
                        help='Nombre de graines par routeur')
    parser.add_argument('--first-seed', type=int, default=1,
                        help='Première graine (les suivantes sont consécutives)')
    parser.add_argument('--config', type=str,
                        help='Fichier JSON de surcharges de configuration')
    parser.add_argument('--end-time', type=float,
                        help='Durée simulée (secondes)')
    parser.add_argument('--output-csv', type=str, default=os.path.join(OUTDIR, 'batch_results.csv'),
                        help='Chemin du fichier CSV de sortie')
    parser.add_argument('--parallel', type=int, default=os.cpu_count(),
                        help='Nombre de processus en parallèle (défaut: nombre de CPU)')
    parser.add_argument('--plot', action='store_true',
                        help='Génère un graphique comparatif du taux de livraison')

    args = parser.parse_args(argv)
    if args.runs <= 0:
        parser.error("Le nombre de runs doit être positif")
    return args


def run_simulation(router: str, seed: int, config_path: str = None, end_time: float = None) -> Dict:
    """
    Exécute une simulation pour un routeur et une graine donnés.

    Args:
        router: Nom du routeur de tous les nœuds
        seed: Graine de l'exécution
        config_path: Fichier JSON de surcharges (optionnel)
        end_time: Durée simulée (optionnel)

    Returns:
        Dict: Résultats de la simulation, ou clé 'error' en cas d'échec
    """
    overrides = {'Group': {'router': router}, 'Scenario': {'seed': seed}}
    if end_time is not None:
        overrides['Scenario']['endTime'] = end_time
    result = {'router': router, 'seed': seed}
    try:
        sim = Simulation(load_settings(config_path, overrides))
        stats = sim.add_report(MessageStatsReport())
        deviation = sim.add_report(LocationDeviationReport())
        sim.run()
    except (SettingsError, ValueError) as e:
        logger.error("Échec de la simulation %s (graine %d): %s", router, seed, e)
        result['error'] = str(e)
        return result
    result.update(stats.summary())
    result.update(deviation.summary())
    return result


def aggregate_results(results: List[Dict]) -> pd.DataFrame:
    """
    Agrège les résultats de plusieurs runs pour calculer les statistiques.

    Args:
        results: Liste des résultats de tous les runs

    Returns:
        pd.DataFrame: une ligne par (routeur, métrique) avec runs, mean et std
    """
    valid_results = [r for r in results if 'error' not in r]
    if not valid_results:
        logger.error("Aucun résultat valide à agréger")
        return pd.DataFrame(columns=['router', 'metric', 'runs', 'mean', 'std'])

    df = pd.DataFrame(valid_results)
    metrics = [m for m in METRICS if m in df.columns]
    long_df = df.melt(id_vars=['router', 'seed'], value_vars=metrics, var_name='metric')
    long_df = long_df.dropna(subset=['value'])
    long_df['value'] = long_df['value'].astype(float)

    grouped = long_df.groupby(['router', 'metric'], sort=True)['value']
    aggregated = grouped.agg(runs='count', mean='mean', std=lambda v: float(np.std(v)) if len(v) > 1 else 0.0)
    return aggregated.reset_index()


def save_to_csv(df: pd.DataFrame, output_file: str):
    """
    Sauvegarde les résultats agrégés dans un fichier CSV.

    Args:
        df: DataFrame contenant les résultats agrégés
        output_file: Chemin du fichier CSV de sortie
    """
    os.makedirs(os.path.dirname(os.path.abspath(output_file)), exist_ok=True)
    df.to_csv(output_file, index=False)
    logger.info(f"Résultats sauvegardés dans {output_file}")


def main(argv=None):
    """
    Fonction principale du script.
    """
    args = parse_arguments(argv)

    logger.info("=== Configuration des tests par lots ===")
    logger.info(f"Routeur(s): {args.routers}")
    logger.info(f"Nombre de runs: {args.runs}")
    logger.info(f"Fichier de sortie: {args.output_csv}")

    tasks = [(router, args.first_seed + i) for router in args.routers for i in range(args.runs)]
    logger.info(f"Démarrage de {len(tasks)} simulations...")
    start_time = time.time()

    results = []
    with tqdm(total=len(tasks), desc="Progression", unit="sim") as pbar:
        if args.parallel > 1:
            with ProcessPoolExecutor(max_workers=args.parallel) as executor:
                futures = [executor.submit(run_simulation, router, seed, args.config, args.end_time)
                           for router, seed in tasks]
                for future in as_completed(futures):
                    results.append(future.result())
                    pbar.update(1)
        else:
            for router, seed in tasks:
                results.append(run_simulation(router, seed, args.config, args.end_time))
                pbar.update(1)

    execution_time = time.time() - start_time
    logger.info(f"Temps d'exécution total: {int(execution_time // 60)} min {execution_time % 60:.1f} s")

    errors = [r for r in results if 'error' in r]
    if errors:
        logger.warning(f"{len(errors)} simulations ont échoué sur {len(results)}")

    aggregated_df = aggregate_results(results)
    save_to_csv(aggregated_df, args.output_csv)

    # Tableau récapitulatif
    if not aggregated_df.empty:
        summary = aggregated_df.pivot(index='router', columns='metric', values='mean')
        columns = [m for m in ('delivery_prob', 'latency_avg', 'overhead_ratio') if m in summary.columns]
        print(tabulate(summary[columns].reset_index(), headers='keys', tablefmt='pretty',
                       floatfmt='.3f', showindex=False))

    if args.plot and not aggregated_df.empty:
        from simulation.visualize import plot_protocol_comparison
        plot_file = plot_protocol_comparison(aggregated_df, 'delivery_prob')
        logger.info(f"Graphique généré: {plot_file}")


if __name__ == "__main__":
    main()
