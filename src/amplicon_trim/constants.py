"""
Constants for amplicon-aware adapter trimming.

Contains the default adapter sequence, seed index parameters, offset
estimation limits, and the fixed thresholds used to validate a trim.
"""

# Illumina universal adapter (first 12 bases)
DEFAULT_ADAPTER = "AGATCGGAAGAG"

# Seed index
DEFAULT_SEED_LENGTH = 30
DEFAULT_MAX_OFFSET = 5      # Search radius around amplicon boundaries

# Offset estimation
ESTIMATION_SAMPLE_SIZE = 1000       # Stop sampling once this many reads are identified
ESTIMATION_MIN_IDENTIFIED = 50      # Fewer identified reads than this is fatal
ESTIMATION_READ_BUDGET = 100000     # Maximum read pairs inspected while sampling
OFFSET_HISTOGRAM_SIZE = 50          # Offsets are tallied over 0..49

# Adapter search
ADJOINING_WINDOW = 10       # Bases compared between partner read and adjoining sequence
MID_READ_MIN_PREFIX = 8     # Prefixes longer than this may match mid-read
MID_READ_MIN_INDEX = 20     # ... but only when the match starts after this index

# Trim validation (fixed, not configurable)
ALIGNMENT_SCORE_THRESHOLD = 400
SHORT_FRAGMENT_LENGTH = 100
SHORT_FRAGMENT_MAX_DISTANCE = 0.1

# Alignment scoring (NUC.4.4 match/mismatch with affine gaps)
MATCH_SCORE = 5
MISMATCH_SCORE = -4
GAP_OPEN = 10
GAP_EXTEND = 1

# Progress logging interval (read pairs)
PROGRESS_INTERVAL = 100000
