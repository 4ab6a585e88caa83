from pathlib import Path

RESOURCES_DIR = Path(__file__).resolve().parent
ROM_DATABASE_PATH = RESOURCES_DIR / 'gen3_rom_data.yaml'
SCRIPT_COMMANDS_PATH = RESOURCES_DIR / 'script_commands.yaml'
SCRIPT_DATA_PATH = RESOURCES_DIR / 'script_data.yaml'
