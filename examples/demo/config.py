"""Config (env) for the demo app."""
from dataclasses import dataclass
import os

from orbit import Options


@dataclass
class Settings:
    files_dir: str


settings = Settings(files_dir=os.getenv("DEMO_FILES_DIR", os.path.dirname(os.path.abspath(__file__))))

options = Options.load_from_env(app_name="demo")
