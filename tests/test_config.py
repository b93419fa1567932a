# -*- coding: utf-8 -*-
"""
Lucent: Simulating documents under different light
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later
"""

import dataclasses
import json

import pytest

from lucent_config import SimulationConfig, load_config
from lucent_errors import ValidationError


def test_defaults():
    cfg = SimulationConfig()
    assert cfg.gamma == 2.4
    assert cfg.degree_of_adaptation == 0.9
    assert cfg.fail_fast is False
    assert cfg.max_workers == 1
    assert len(cfg.working_grid()) == 77


def test_is_frozen():
    cfg = SimulationConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        cfg.gamma = 2.2


@pytest.mark.parametrize(
    "kwargs",
    [
        {"gamma": 0.0},
        {"gamma": float("nan")},
        {"degree_of_adaptation": 1.1},
        {"degree_of_adaptation": -0.01},
        {"working_step": 0.0},
        {"working_start": 380.0},
        {"working_stop": 800.0},
        {"working_start": 600.0, "working_stop": 500.0},
        {"max_workers": 0},
        {"max_workers": 2.5},
        {"max_workers": True},
    ],
)
def test_invalid_values(kwargs):
    with pytest.raises(ValidationError):
        SimulationConfig(**kwargs)


def test_custom_grid():
    cfg = SimulationConfig(working_start=420.0, working_stop=700.0, working_step=10.0)
    grid = cfg.working_grid()
    assert grid.bounds == (420.0, 700.0)
    assert len(grid) == 29


def test_state_round_trip():
    cfg = SimulationConfig(gamma=2.2, degree_of_adaptation=0.5, fail_fast=True, max_workers=4)
    state = cfg.get_state()
    assert state["gamma"] == 2.2
    assert SimulationConfig.from_state(state) == cfg


def test_from_state_partial_and_unknown():
    assert SimulationConfig.from_state({"gamma": 2.2}).degree_of_adaptation == 0.9
    with pytest.raises(ValidationError, match="gama"):
        SimulationConfig.from_state({"gama": 2.2})


def test_load_config(tmp_path):
    path = tmp_path / "lucent.json"
    path.write_text(json.dumps({"gamma": 2.2, "max_workers": 3}))
    cfg = load_config(path)
    assert cfg.gamma == 2.2 and cfg.max_workers == 3


@pytest.mark.parametrize("content", ["[1, 2]", "{broken", '{"unknown": 1}'])
def test_load_config_rejects(tmp_path, content):
    path = tmp_path / "lucent.json"
    path.write_text(content)
    with pytest.raises(ValidationError):
        load_config(path)


@pytest.mark.parametrize("step, last", [(200.0, 600.0), (150.0, 700.0), (7.0, 778.0)])
def test_coarse_step_stays_inside(step, last):
    grid = SimulationConfig(working_step=step).working_grid()
    assert grid.bounds == (400.0, last)


def test_step_wider_than_range():
    with pytest.raises(ValidationError, match="fewer than 2"):
        SimulationConfig(working_start=500.0, working_stop=600.0, working_step=150.0)
