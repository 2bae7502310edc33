"""
Sine Regression by Backpropagation

Trains a routed network on samples of a scaled sine wave with the
supervised learner, then saves the trained network to disk.

The Problem:
    f(x) = 0.5 + 0.4 * sin(x),  x in [-3, 3]

    The output layer uses the sigmoid activation, so the targets are scaled
    into (0, 1). The hidden layer uses tanh.

Usage:
    python learn_sine.py
"""

import logging
from pathlib import Path

import numpy as np

from evoroute.phenotype import Network
from evoroute.run       import Config, SupervisedLearner

logger = logging.getLogger(__name__)

def sine(x: float) -> float:
    return 0.5 + 0.4 * np.sin(x)

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    config  = Config(Path(__file__).parent / "config_sine.ini")
    network = Network.from_config(config, rng=np.random.default_rng(config.seed))
    learner = SupervisedLearner.from_config(network, config)

    for x in np.linspace(-3, 3, 40):
        learner.add_training_data([x], [sine(x)])

    if learner.learn(config.target_error, config.max_iterations):
        logger.info("Reached error %.5f after %d iterations.", learner.last_error, learner.iterations)
    else:
        logger.info("Gave up at error %.5f.", learner.last_error)

    s  = "x        output   target\n"
    s += "------------------------\n"
    for x in np.linspace(-3, 3, 7):
        s += f"{x:+.2f}    {network.evaluate([x])[0]:.4f}   {sine(x):.4f}\n"
    logger.info(s)

    if network.save_to_file("sine.net"):
        logger.info("Network saved as 'sine.net'")
