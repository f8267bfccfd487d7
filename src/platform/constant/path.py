import os
from pathlib import Path


# Repository root
BASE_DIR = Path(__file__).resolve().parent.parent.parent.parent

# Tests redirect log files into a tmp dir
IS_TEST_RUN = 'TEST_LOG_DIR' in os.environ
LOG_DIR = Path(os.environ['TEST_LOG_DIR']) if IS_TEST_RUN else BASE_DIR / 'logs'
