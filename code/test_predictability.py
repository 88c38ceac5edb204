# test_predictability.py
"""
Tests de la table des prédictibilités de livraison et du routeur PRoPHET.
"""
import random

import pytest

from conftest import new_message, send
from protocols.predictability import DeliveryPredictabilityStore, P_INIT
from protocols.prophet import ProphetRouter
from simulation.context import SimClock


def make_store(clock=None, seconds_in_unit=30):
    return DeliveryPredictabilityStore(clock or SimClock(), seconds_in_unit)


def test_age_twice_without_elapsed_time_is_idempotent():
    clock = SimClock()
    store = make_store(clock)
    store.on_contact_up(1)
    clock.advance(120)
    store.age()
    first = store.delivery_preds()
    store.age()
    assert store.delivery_preds() == first


def test_aging_applies_gamma_per_time_unit():
    clock = SimClock()
    store = make_store(clock, seconds_in_unit=30)
    store.on_contact_up(1)
    clock.advance(60)
    assert store.predictability_for(1) == pytest.approx(P_INIT * 0.98 ** 2)


def test_unknown_host_reads_zero():
    assert make_store().predictability_for(7) == 0.0


def test_predictability_stays_in_bounds_for_random_sequences():
    """1000 séquences aléatoires de rencontres, vieillissements et transitivités."""
    rng = random.Random(1234)
    for _ in range(1000):
        clock = SimClock()
        store = make_store(clock, seconds_in_unit=rng.choice([1, 30, 300]))
        for _ in range(20):
            action = rng.random()
            if action < 0.4:
                store.on_contact_up(rng.randrange(10))
            elif action < 0.7:
                peer_table = {rng.randrange(10): rng.random() for _ in range(rng.randrange(5))}
                store.merge_transitive(rng.randrange(10), peer_table, own_address=0)
            else:
                clock.advance(rng.uniform(0, 5000))
            for p in store.delivery_preds().values():
                assert 0.0 <= p <= 1.0


def test_peek_and_delivery_preds_do_not_mutate():
    clock = SimClock()
    store = make_store(clock)
    store.on_contact_up(1)
    clock.advance(300)
    raw_before = dict(store._preds)
    last_age_before = store.last_age_update

    assert store.peek(1) == pytest.approx(P_INIT * 0.98 ** 10)
    assert store.delivery_preds()[1] == pytest.approx(P_INIT * 0.98 ** 10)
    assert store._preds == raw_before
    assert store.last_age_update == last_age_before


@pytest.mark.parametrize("kwargs", [
    {'seconds_in_unit': 0},
    {'seconds_in_unit': 30, 'beta': 1.5},
    {'seconds_in_unit': 30, 'gamma': 0.0},
])
def test_invalid_parameters_are_rejected(kwargs):
    with pytest.raises(ValueError):
        DeliveryPredictabilityStore(SimClock(), **kwargs)


#*************** Routeur PRoPHET ****************
def test_first_contact_gives_p_init(make_context, make_hosts, make_swarm):
    """Deux routeurs PRoPHET, un contact à t=0 sans historique : P(A,B) = 0.75."""
    context = make_context(2)
    a, b = make_hosts(context, [ProphetRouter, ProphetRouter])
    make_swarm(context, [a, b]).connect(a, b)

    assert a.router.get_pred_for(b) == 0.75
    assert b.router.get_pred_for(a) == 0.75


def test_transitive_update_excludes_own_address(make_context, make_hosts, make_swarm):
    context = make_context(3)
    a, b, c = make_hosts(context, [ProphetRouter] * 3)
    swarm = make_swarm(context, [a, b, c])
    swarm.connect(b, c)
    swarm.disconnect(b, c)
    swarm.connect(a, b)

    # P(A,C) = 0 + (1 - 0) * P(A,B) * P(B,C) * beta
    assert a.router.get_pred_for(c) == pytest.approx(0.75 * 0.75 * 0.25)
    # B fusionne ensuite la table de A, qui contient B
    assert b.address not in b.router.predictability
    assert a.address not in a.router.predictability


def test_forwards_to_peer_with_better_predictability(make_context, make_hosts, make_swarm):
    context = make_context(3)
    a, b, d = make_hosts(context, [ProphetRouter] * 3)
    swarm = make_swarm(context, [a, b, d])
    swarm.connect(b, d)
    swarm.disconnect(b, d)

    m = new_message('M1', a, d)
    assert a.router.create_new_message(m)
    swarm.connect(a, b)
    started = send(context, a, [a, b])

    assert started is not None and started[0].id == 'M1'
    assert b.router.has_message('M1')
    assert a.router.has_message('M1')


def test_does_not_forward_to_worse_peer(make_context, make_hosts, make_swarm):
    context = make_context(3)
    a, b, d = make_hosts(context, [ProphetRouter] * 3)
    swarm = make_swarm(context, [a, b, d])
    swarm.connect(a, d)
    swarm.disconnect(a, d)

    assert a.router.create_new_message(new_message('M1', a, d))
    swarm.connect(a, b)
    assert send(context, a, [a, b]) is None
    assert not b.router.has_message('M1')
