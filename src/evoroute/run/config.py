import configparser
import os

from evoroute.activations import activations

_WEIGHT_POLICIES = ('none', 'random', 'fixed')

class Config:

    @staticmethod
    def _check_activation(name, key):
        if name is not None and name not in activations:
            raise ValueError(f"Invalid activation function '{name}' for '{key}', "
                             f"expected one of {sorted(activations)}")
        return name

    @staticmethod
    def _check_weight_policy(policy):
        if policy not in _WEIGHT_POLICIES:
            raise ValueError(f"Invalid weight policy '{policy}', expected one of {_WEIGHT_POLICIES}")
        return policy

    def __init__(self, config_file: str | None = None):
        """
        Initialize Config by parsing an INI file, or create a default Config.

        Parameters:
            config_file: Path to the INI configuration file.
                         If None, creates a Config with default values for manual attribute setting.
        """

        # Default config for testing/manual setup
        if config_file is None:
            self.num_inputs        = 1
            self.num_outputs       = 1
            self.layer_size        = 1
            self.num_hidden_layers = 1
            self.activation        = 'identity'
            self.output_activation = None

            self.weight_policy = 'random'
            self.random_lower  = -1
            self.random_upper  = 1
            self.fixed_weight  = 1.0
            self.initial_bias  = 0.0

            self.learning_rate = 0.01
            self.momentum      = 0.5

            self.population_size     = 100
            self.crossover_rate      = 0.5
            self.mutation_rate       = 0.006
            self.hall_of_fame_size   = 0
            self.max_repair_attempts = 10000
            self.seed                = None

            self.fitness_threshold      = None
            self.max_number_generations = 100

            self.target_error      = 0.01
            self.max_iterations    = None
            self.training_fraction = 0.8
            return

        if not os.path.exists(config_file):
            raise FileNotFoundError(f"Configuration file '{config_file}' not found")

        parser = configparser.ConfigParser()
        parser.read(config_file)

        # Sentinel for missing default values
        _NO_DEFAULT = object()

        # Helper function to safely parse values
        def get_value(section, key, value_type, default=_NO_DEFAULT):
            try:
                raw_value = parser.get(section, key)
                if raw_value.lower() == 'none':
                    return None
                if value_type == int:
                    return parser.getint(section, key)
                elif value_type == float:
                    return parser.getfloat(section, key)
                elif value_type == bool:
                    return parser.getboolean(section, key)
                elif value_type == str:
                    return raw_value
            except (configparser.NoSectionError, configparser.NoOptionError):
                if default is not _NO_DEFAULT:
                    return default
                raise

        # [NETWORK]

        # The number of input units, through which the network receives inputs.
        self.num_inputs = get_value('NETWORK', 'num_inputs', int)

        # The number of output units, to which the network delivers outputs.
        self.num_outputs = get_value('NETWORK', 'num_outputs', int)

        # The number of units in a hidden layer, unless a size is given explicitly.
        self.layer_size = get_value('NETWORK', 'layer_size', int)

        # The number of hidden layers of newly-created networks.
        # Evaluation needs at least one.
        self.num_hidden_layers = get_value('NETWORK', 'num_hidden_layers', int, default=1)

        # Activation function of every hidden and output unit.
        # Options: see 'basic_activations.py' (identity, threshold, sigmoid, tanh, relu, sin, softplus).
        self.activation = self._check_activation(
            get_value('NETWORK', 'activation', str, default='identity'), 'activation')

        # Activation function of the output layer, if it differs from 'activation'.
        self.output_activation = self._check_activation(
            get_value('NETWORK', 'output_activation', str, default=None), 'output_activation')

        # [WEIGHTS]

        # How weights are created when the fan-in of a unit grows.
        # Allowed values:
        #   "none"   - weights are never created automatically
        #   "random" - uniform in [random_lower, random_upper], in steps of 0.001
        #   "fixed"  - every new weight equals 'fixed_weight'
        self.weight_policy = self._check_weight_policy(get_value('WEIGHTS', 'weight_policy', str, default='random'))

        # Integer bounds of the random weight range.
        self.random_lower = get_value('WEIGHTS', 'random_lower', int, default=-1)
        self.random_upper = get_value('WEIGHTS', 'random_upper', int, default=1)

        # The value of new weights under the "fixed" policy.
        self.fixed_weight = get_value('WEIGHTS', 'fixed_weight', float, default=1.0)

        # The bias given to every non-input unit at construction.
        self.initial_bias = get_value('WEIGHTS', 'initial_bias', float, default=0.0)

        # [BACKPROPAGATION]

        # Step size and momentum of the weight updates.
        self.learning_rate = get_value('BACKPROPAGATION', 'learning_rate', float, default=0.01)
        self.momentum      = get_value('BACKPROPAGATION', 'momentum',      float, default=0.5)

        # [GENETIC_ALGORITHM]

        # The number of networks in each generation.
        self.population_size = get_value('GENETIC_ALGORITHM', 'population_size', int)

        # The probability that a child is a single-point crossover of its parents
        # (otherwise it copies one parent).
        self.crossover_rate = get_value('GENETIC_ALGORITHM', 'crossover_rate', float)

        # The probability that any single bit of a child's chromosome is flipped.
        self.mutation_rate = get_value('GENETIC_ALGORITHM', 'mutation_rate', float)

        # The number of most-fit networks carried over unchanged to the next generation.
        # Networks tied with the last one admitted are admitted as well.
        self.hall_of_fame_size = get_value('GENETIC_ALGORITHM', 'hall_of_fame_size', int, default=0)

        # How many children to try when replacing a non-viable one, before giving up.
        # Use "None" to keep trying forever.
        self.max_repair_attempts = get_value('GENETIC_ALGORITHM', 'max_repair_attempts', int, default=10000)

        # Seed of the random generator used for selection and mating.
        # Use "None" for a different run every time.
        self.seed = get_value('GENETIC_ALGORITHM', 'seed', int, default=None)

        # [TERMINATION]

        # The maximum fitness which when met or exceeded causes the run to end.
        # Use "None" to always run 'max_number_generations' generations.
        self.fitness_threshold = get_value('TERMINATION', 'fitness_threshold', float, default=None)

        # The number of generations after which to stop the run.
        self.max_number_generations = get_value('TERMINATION', 'max_number_generations', int)

        # [LEARNER] (optional section)

        # Held-out error below which supervised learning stops.
        self.target_error = get_value('LEARNER', 'target_error', float, default=0.01)

        # Maximum number of passes over the training set ("None" for no limit).
        self.max_iterations = get_value('LEARNER', 'max_iterations', int, default=None)

        # Fraction of the data used for training, the rest is held out.
        self.training_fraction = get_value('LEARNER', 'training_fraction', float, default=0.8)
