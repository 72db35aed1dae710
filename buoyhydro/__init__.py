from .core.types import (
    BodyState,
    ForceResult,
    KernelOptions,
    BodyParams,
    SimulationConfig,
)
from .core.exceptions import (
    SchemaError,
    ConfigError,
    DataError,
    NumericalInstability,
)
from .hydro.coefficients import (
    FrequencyCoefficientStore,
    FrequencyCoefficientTable,
    ExcitationTable,
)
from .hydro.kernels import KernelSynthesizer
from .hydro.history import ConvolutionHistory
from .forces.hydrostatics import HydrostaticModel
from .models.buoy6dof.model import ForceEvaluator, build_force_evaluator
from .analysis.frequency_response import FrequencyResponseSolver
