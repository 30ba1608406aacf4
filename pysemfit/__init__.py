from .config import FitConfig
from .errors import (SEMError, SpecificationError, UnknownVariableError,
                     DuplicateParameterError, VariableMismatchError,
                     IdentificationError, UnderidentifiedModelError,
                     NumericalError, SingularStructuralMatrix,
                     OptimizationFailure, SEMWarning, NonConvergence,
                     SingularInformationMatrix)
from .model_data import SampleMoments
from .optimizer import TerminationState
from .param_table import ParameterTable
from .results import FitResult
from .sem import SEM, cfa
from .bootstrap import bootstrap_se

__all__ = ["FitConfig", "SEMError", "SpecificationError", "UnknownVariableError",
           "DuplicateParameterError", "VariableMismatchError",
           "IdentificationError", "UnderidentifiedModelError", "NumericalError",
           "SingularStructuralMatrix", "OptimizationFailure", "SEMWarning",
           "NonConvergence", "SingularInformationMatrix", "SampleMoments",
           "TerminationState", "ParameterTable", "FitResult", "SEM", "cfa",
           "bootstrap_se"]
