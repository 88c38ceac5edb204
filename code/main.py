#!/usr/bin/env python3
# main.py
"""
Exécute une simulation de routage opportuniste et affiche ses statistiques.

Usage:
    python main.py --router ProphetRouter --seed 42
    python main.py --router ProphetPtuRouter SprayAndWaitRouter --end-time 7200
    python main.py --config scenario.json --traces traces.csv --output-csv results.csv
"""
import argparse
import logging
import os
import sys

import pandas as pd

from config import OUTDIR, SettingsError, load_settings
from data.loader import load_traces
from simulation.engine import ROUTERS, Simulation
from simulation.reports import (ContactGraphReport, LocationDeviationReport,
                                MessageStatsReport, summary_table)
from simulation.visualize import plot_contact_graph

logger = logging.getLogger(__name__)


def parse_arguments(argv=None):
    """Parse les arguments de ligne de commande."""
    parser = argparse.ArgumentParser(description="Simulation de protocoles de routage DTN")
    parser.add_argument('--router', nargs='+', choices=sorted(ROUTERS),
                        help="Routeur(s) des nœuds ; plusieurs noms = population mixte")
    parser.add_argument('--seed', type=int, help="Graine de l'exécution")
    parser.add_argument('--hosts', type=int, help="Nombre de nœuds")
    parser.add_argument('--end-time', type=float, help="Durée simulée (secondes)")
    parser.add_argument('--config', type=str, help="Fichier JSON de surcharges de configuration")
    parser.add_argument('--traces', type=str, help="Fichier CSV de traces (time, host, x, y)")
    parser.add_argument('--output-csv', type=str,
                        default=os.path.join(OUTDIR, 'simulation_results.csv'),
                        help="Fichier CSV des résultats")
    parser.add_argument('--plot', action='store_true', help="Dessine le graphe des contacts")
    parser.add_argument('--progress', action='store_true', help="Affiche une barre de progression")
    parser.add_argument('--verbose', '-v', action='store_true', help="Journalisation détaillée")
    return parser.parse_args(argv)


def build_overrides(args) -> dict:
    """Traduit les options de ligne de commande en surcharges de configuration."""
    overrides = {}
    if args.router:
        overrides.setdefault('Group', {})['router'] = args.router if len(args.router) > 1 else args.router[0]
    if args.seed is not None:
        overrides.setdefault('Scenario', {})['seed'] = args.seed
    if args.hosts is not None:
        overrides.setdefault('Scenario', {})['nrofHosts'] = args.hosts
    if args.end_time is not None:
        overrides.setdefault('Scenario', {})['endTime'] = args.end_time
    return overrides


def run(settings, traces=None, progress=False):
    """
    Exécute une simulation avec les rapports standards.

    Returns:
        tuple: (simulation, dict résumé fusionné de tous les rapports)
    """
    sim = Simulation(settings, traces=traces)
    stats = sim.add_report(MessageStatsReport())
    deviation = sim.add_report(LocationDeviationReport())
    contacts = sim.add_report(ContactGraphReport())
    sim.run(progress=progress)

    summary = {}
    summary.update(stats.summary())
    summary.update(deviation.summary())
    summary.update(contacts.summary())
    return sim, summary


def main(argv=None):
    """Point d'entrée principal du programme."""
    args = parse_arguments(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    try:
        settings = load_settings(args.config, build_overrides(args))
        traces = load_traces(args.traces) if args.traces else None
        sim, summary = run(settings, traces, progress=args.progress)
    except (SettingsError, ValueError) as e:
        logger.error("Configuration invalide: %s", e)
        return 2

    print(f"\n### {sim} ###")
    routers = settings.get('Group', 'router')
    print(f"Routeur(s): {routers if isinstance(routers, str) else ', '.join(routers)}\n")
    print(summary_table(summary))

    os.makedirs(os.path.dirname(os.path.abspath(args.output_csv)), exist_ok=True)
    pd.DataFrame([summary]).to_csv(args.output_csv, index=False)
    logger.info("Résultats sauvegardés dans %s", args.output_csv)

    if args.plot:
        contacts = next(r for r in sim.reports if isinstance(r, ContactGraphReport))
        logger.info("Graphe des contacts: %s", plot_contact_graph(contacts.graph))
    return 0


if __name__ == "__main__":
    sys.exit(main())
