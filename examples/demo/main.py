"""
App composition: dependencies via app.provide(), services via version groups.
To run: orbit run main:app --app-dir examples/demo
    or: uvicorn main:app  (from examples/demo)
"""
import sys
from pathlib import Path

# example lives in examples/demo
sys.path.insert(0, str(Path(__file__).resolve().parent))

from orbit import Application, VersionGroup

from config import Settings, options, settings
from services import DemoService, FileHandler, HealthService


def provide_settings() -> Settings:
    return settings


app = Application(options)
app.provide(provide_settings)

v1 = VersionGroup(1).stable(DemoService, HealthService).beta(FileHandler)
app.register(v1)

if __name__ == "__main__":
    app.run()
