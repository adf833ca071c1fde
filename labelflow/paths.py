from pathlib import Path

# Go up twice. Assumes labelflow and paths.py is not moved
ROOT_PATH = Path(__file__).parent.parent

# Top Level
CONFIG_PATH = ROOT_PATH / 'config'

# config
CLIENT_CONFIG_PATH = CONFIG_PATH / 'client.yaml'
