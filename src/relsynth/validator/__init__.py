from relsynth.validator.data_fidelity import ColumnFidelityResult, DistributionFidelityValidator
from relsynth.validator.integrity_validator import IntegrityCheckResult, IntegrityValidator
