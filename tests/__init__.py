"""
Enemy DRL Tests Package
=======================

Unit tests for the learning core:
    - test_network: Parameters, forward pass, shared QNetwork, torch mirror
    - test_replay_buffer: Transitions, proximity-filtered sampling, clearing
    - test_action_space / test_observation: Host-facing vocabulary
    - test_action_selector: Masked epsilon-greedy selection
    - test_trainer: TD targets, gradients, updates, target syncs
    - test_engine: Tick phases, lifecycle, arena smoke run
"""
