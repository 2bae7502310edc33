"""
Run Package

Modules:
    config:             Config, parsed from an INI file
    trial:              Trial, one evolutionary run driven by a GeneticAlgorithm
    supervised_learner: SupervisedLearner, backpropagation training loop
"""

from evoroute.run.config             import Config
from evoroute.run.trial              import Trial
from evoroute.run.supervised_learner import SupervisedLearner, TrainingItem

__all__ = ['Config',
           'Trial',
           'SupervisedLearner',
           'TrainingItem']
