# test_ptu.py
"""
Tests des unités de traduction entre PRoPHET et Spray-and-Wait.
"""
import pytest

from config import Settings
from conftest import new_message, send
from protocols.prophet import ProphetRouter
from protocols.ptu import ProphetPtuRouter, SnwPtuRouter
from protocols.replica_budget import MSG_COUNT_PROPERTY
from protocols.spray_and_wait import SprayAndWaitRouter
from simulation.engine import Simulation

SNW = {'nrofCopies': 8, 'binaryMode': True}


def copies(host, msg_id='M1'):
    return host.router.get_message(msg_id).get_property(MSG_COUNT_PROPERTY)


def test_prophet_ptu_initializes_budget_for_spray_peer(make_context, make_hosts, make_swarm):
    context = make_context(3, SprayAndWaitRouter=SNW)
    a, b, d = make_hosts(context, [ProphetPtuRouter, SprayAndWaitRouter, ProphetRouter])
    swarm = make_swarm(context, [a, b, d])

    assert a.router.create_new_message(new_message('M1', a, d))
    assert copies(a) is None
    swarm.connect(a, b)
    assert send(context, a, [a, b, d]) is not None

    assert copies(a) == 4
    assert copies(b) == 4


def test_prophet_ptu_accounts_budget_from_spray_sender(make_context, make_hosts, make_swarm):
    context = make_context(3, SprayAndWaitRouter=SNW)
    a, b, d = make_hosts(context, [SprayAndWaitRouter, ProphetPtuRouter, ProphetRouter])
    swarm = make_swarm(context, [a, b, d])

    assert a.router.create_new_message(new_message('M1', a, d))
    swarm.connect(a, b)
    assert send(context, a, [a, b, d]) is not None

    assert copies(a) == 4
    assert copies(b) == 4


def test_budget_leaves_when_handed_to_prophet_peer(make_context, make_hosts, make_swarm):
    """Un message remis à un pair PRoPHET quitte la comptabilité Spray-and-Wait des deux côtés."""
    context = make_context(4, SprayAndWaitRouter=SNW)
    s, a, p, d = make_hosts(context, [SprayAndWaitRouter, ProphetPtuRouter, ProphetRouter, ProphetRouter])
    swarm = make_swarm(context, [s, a, p, d])

    assert s.router.create_new_message(new_message('M1', s, d))
    swarm.connect(s, a)
    send(context, s, [s, a, p, d])
    swarm.disconnect(s, a)
    assert copies(a) == 4

    swarm.connect(a, p)
    started = send(context, a, [s, a, p, d])
    assert started is not None and started[0].id == 'M1'
    assert copies(a) is None
    assert copies(p) is None


def test_single_copy_is_kept_for_direct_delivery(make_context, make_hosts, make_swarm):
    context = make_context(3, SprayAndWaitRouter=SNW)
    a, b, d = make_hosts(context, [ProphetPtuRouter, SprayAndWaitRouter, ProphetRouter])
    swarm = make_swarm(context, [a, b, d])

    m = new_message('M1', a, d)
    m.add_property(MSG_COUNT_PROPERTY, 1)
    assert a.router.create_new_message(m)
    swarm.connect(a, b)
    assert send(context, a, [a, b, d]) is None
    assert not b.router.has_message('M1')


def test_snw_ptu_strips_budget_for_prophet_peer(make_context, make_hosts, make_swarm):
    context = make_context(3, SprayAndWaitRouter=SNW)
    a, p, d = make_hosts(context, [SnwPtuRouter, ProphetRouter, ProphetRouter])
    swarm = make_swarm(context, [a, p, d])

    assert a.router.create_new_message(new_message('M1', a, d))
    assert copies(a) == 8
    swarm.connect(a, p)
    assert send(context, a, [a, p, d]) is not None

    assert copies(p) is None
    # La copie locale est réduite comme après tout transfert émis
    assert copies(a) == 4


def test_snw_ptu_keeps_predictability_for_prophet_peers(make_context, make_hosts, make_swarm):
    context = make_context(3, SprayAndWaitRouter=SNW)
    a, p, s = make_hosts(context, [SnwPtuRouter, ProphetRouter, SprayAndWaitRouter])
    swarm = make_swarm(context, [a, p, s])
    swarm.connect(a, p)
    swarm.connect(a, s)

    assert a.router.get_pred_for(p) == 0.75
    assert p.router.get_pred_for(a) == 0.75
    # Un pair Spray-and-Wait pur n'alimente pas la table
    assert a.router.get_pred_for(s) == 0.0


def test_snw_ptu_strips_stale_budget_from_prophet_sender(make_context, make_hosts, make_swarm):
    context = make_context(3, SprayAndWaitRouter=SNW)
    p, a, d = make_hosts(context, [ProphetRouter, SnwPtuRouter, ProphetRouter])
    make_swarm(context, [p, a, d]).connect(p, a)

    m = new_message('M1', p, d)
    m.add_property(MSG_COUNT_PROPERTY, 6)
    assert a.router.receive_message(m, p) == 0
    a.router.message_transferred('M1', p)
    assert copies(a) is None


@pytest.mark.parametrize("seed", [1, 2])
def test_mixed_run_keeps_a_single_accounting_regime(seed):
    settings = Settings(overrides={
        'Scenario': {'nrofHosts': 12, 'endTime': 1800, 'updateInterval': 2.0,
                     'seed': seed, 'strictChecks': True, 'worldSize': [300, 300]},
        'Group': {'router': ['ProphetRouter', 'SprayAndWaitRouter', 'ProphetPtuRouter', 'SnwPtuRouter'],
                  'transmitRange': 80},
        'Events': {'interval': [20, 30]},
    })
    sim = Simulation(settings).run()

    for host in sim.hosts:
        router = host.router
        for m in router.get_message_collection():
            count = m.get_property(MSG_COUNT_PROPERTY)
            if type(router) is ProphetRouter:
                assert count is None, f"{m.id} porte un budget chez {host}"
            elif type(router) is SprayAndWaitRouter:
                assert count is not None and count >= 1
            elif count is not None:
                assert count >= 1
