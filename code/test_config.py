# test_config.py
"""
Tests de la configuration : accès typé, surcharges et fichiers JSON.
"""
import json

import pytest

from config import CONFIG, Settings, SettingsError, load_settings, merge_config
from simulation.context import RunContext


def test_defaults_come_from_config():
    settings = Settings()
    assert settings.get_int('SprayAndWaitRouter', 'nrofCopies') == CONFIG['SprayAndWaitRouter']['nrofCopies']
    assert settings.get_float('ProphetRouter', 'beta') == 0.25


def test_missing_key_raises_unless_default():
    settings = Settings()
    with pytest.raises(SettingsError):
        settings.get('LucidRouter', 'unknown')
    assert settings.get('LucidRouter', 'unknown', 3) == 3
    assert not settings.contains('LucidRouter', 'unknown')


def test_typed_accessors_reject_bad_values():
    settings = Settings(overrides={'Group': {'bufferSize': 'big', 'sendQueue': 'fifo'}})
    with pytest.raises(SettingsError):
        settings.get_int('Group', 'bufferSize')
    with pytest.raises(SettingsError):
        settings.get_bool('Group', 'sendQueue')


@pytest.mark.parametrize("raw,expected", [('true', True), ('0', False), (True, True), (0, False)])
def test_get_bool(raw, expected):
    assert Settings(overrides={'X': {'flag': raw}}).get_bool('X', 'flag') is expected


def test_get_range():
    settings = Settings(overrides={'Events': {'interval': [5, 9], 'size': 100, 'bad': [9, 5]}})
    assert settings.get_range('Events', 'interval') == (5, 9)
    assert settings.get_range('Events', 'size') == (100, 100)
    with pytest.raises(SettingsError):
        settings.get_range('Events', 'bad')


def test_overrides_never_touch_defaults():
    settings = Settings(overrides={'Scenario': {'seed': 99}})
    other = settings.with_overrides({'Scenario': {'nrofHosts': 3}})
    assert CONFIG['Scenario']['seed'] == 42
    assert other.get_int('Scenario', 'seed') == 99
    assert other.get_int('Scenario', 'nrofHosts') == 3
    assert settings.get_int('Scenario', 'nrofHosts') == CONFIG['Scenario']['nrofHosts']


def test_merge_config_keeps_other_keys():
    merged = merge_config({'A': {'x': 1, 'y': 2}}, {'A': {'y': 3}, 'B': 4})
    assert merged == {'A': {'x': 1, 'y': 3}, 'B': 4}


def test_load_settings_from_json(tmp_path):
    path = tmp_path / 'scenario.json'
    path.write_text(json.dumps({'LucidRouter': {'localityRange': 350}, 'Scenario': {'seed': 1}}))
    settings = load_settings(str(path), {'Scenario': {'seed': 2}})
    assert settings.get_float('LucidRouter', 'localityRange') == 350
    assert settings.get_int('Scenario', 'seed') == 2


def test_load_settings_errors(tmp_path):
    with pytest.raises(SettingsError):
        load_settings(str(tmp_path / 'absent.json'))
    broken = tmp_path / 'broken.json'
    broken.write_text("{not json")
    with pytest.raises(SettingsError):
        load_settings(str(broken))


def test_runs_are_lenient_unless_strict_checks_requested():
    assert not RunContext(Settings()).strict
    assert RunContext(Settings(overrides={'Scenario': {'strictChecks': True}})).strict
