"""
Default Configuration Constants for the simpleflux driver

This module contains ALL default values used by the flux driver.
It is the Single Source of Truth (SSOT) for default configuration;
defaults.yaml may override them at runtime through the YAML loader.

IMPORTANT Import Policies:
    1. DO NOT use: from simpleflux.config.defaults import *
       This causes namespace pollution and makes tracking difficult.

    2. DO use explicit imports:
       from simpleflux.config.defaults import DEFAULT_NUM_CYCLES, DEFAULT_ENTRY_REUSE

    3. DO NOT define defaults elsewhere. All defaults must be in this file.
"""

# =============================================================================
# Record Store Defaults
# =============================================================================

# Comma-separated list of record groups to attach from each file.
# "entry" is mandatory; "numi" (parent decay) and "aux" are optional, but
# once requested at least one file of the chain must carry them.
DEFAULT_BRANCH_REQUEST = "entry"

# Names of the HDF5 objects inside a flux file
ENTRY_DATASET = "entry"
PARENT_DATASET = "numi"
AUX_GROUP = "aux"
AUX_INT_DATASET = "auxint"
AUX_DBL_DATASET = "auxdbl"
META_GROUP = "meta"

# =============================================================================
# Traversal Defaults
# =============================================================================

# Number of passes over the chained records.
# 0 means cycle without limit (POT accounting then covers one pass only).
DEFAULT_NUM_CYCLES = 1

# Number of times an entry is served in a row before moving to the next one
DEFAULT_ENTRY_REUSE = 1

# =============================================================================
# Generation Defaults
# =============================================================================

# False: rejection-sample against the max weight and serve weight=1 rays
# True: serve every accepted ray with its native weight
DEFAULT_GEN_WEIGHTED = False

# Maximum neutrino energy [GeV]
# None: take the aggregate maximum energy from the file metadata
DEFAULT_MAX_ENERGY = None

# Accepted neutrino species (PDG codes)
# Empty: accept every species listed in the file metadata
DEFAULT_FLUX_PARTICLES: tuple = ()

# Z position [m] the rays are pushed back to after reconstitution
# None: keep the position stored in the file (on the flux window)
DEFAULT_UPSTREAM_Z = None

# Seed for the rejection sampler
# None: draw one entropy value at construction (still reproducible by clear())
DEFAULT_SEED = None

# Log a liveness warning every N consecutive rejection-sampling misses
DEFAULT_REJECT_WARNING_INTERVAL = 100000

# =============================================================================
# Metadata Defaults
# =============================================================================

# Absolute tolerance [m] when comparing flux windows of different files
DEFAULT_WINDOW_TOLERANCE = 1.0e-6

# Number of input file names shown when describing a metadata block
MAX_FILES_PRINTED = 10

# =============================================================================
# Geometry Defaults
# =============================================================================

# |pz| below this is treated as parallel to the z plane in move_to_z0
PZ_PARALLEL_EPSILON = 1.0e-30

# =============================================================================
# Logging Defaults
# =============================================================================

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
