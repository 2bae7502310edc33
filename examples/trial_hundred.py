"""
Hundred Output Problem

Evolves a chain of single-unit layers whose output is 100 when its input is 1.

The Problem:
    The network has one input, one output and three hidden layers of one
    unit each. Every unit uses the identity activation, so the output is the
    product of the weights along the chain plus the contribution of the
    biases. Weights and biases are all encoded in the chromosome, and the
    genetic algorithm has to find values whose output floors to exactly 100.

Fitness Function:
    Fitness = max(100 - |100 - floor(output)|, 0)

    A network whose output is not a finite number is not viable (fitness -1)
    and is replaced by a new child of the previous generation.

Classes:
    Trial_Hundred: Trial evolving the hundred output network

Usage:
    config = Config("config_hundred.ini")
    trial  = Trial_Hundred(config)
    trial.run(num_jobs=1)
"""

import logging
import math
from pathlib import Path

from evoroute.phenotype import Network
from evoroute.run       import Config, Trial

logger = logging.getLogger(__name__)

class Trial_Hundred(Trial):
    """
    Trial evolving a network that outputs 100 when fed 1.

    Implemented Methods:
        score_fitness(network): Distance of the floored output from 100
        _final_report():        Log the fittest network and render it
    """

    def score_fitness(self, network: Network) -> int:
        output = network.evaluate([1.0])[0]
        if not math.isfinite(output):
            return -1
        error = abs(100 - math.floor(output))
        return max(100 - error, 0)

    def _final_report(self):
        super()._final_report()

        fittest = self.genetic_algorithm.get_fittest()
        logger.info("Fittest network outputs %.4f\n%s", fittest.evaluate([1.0])[0], fittest)

        try:
            fittest.visualize().render("hundred_output", format="pdf", cleanup=True)
            logger.info("Network visualization saved as 'hundred_output.pdf'")
        except Exception as e:
            logger.warning("Could not visualize network: %s", e)

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    config = Config(Path(__file__).parent / "config_hundred.ini")
    trial  = Trial_Hundred(config)
    trial.run(num_jobs=1)
