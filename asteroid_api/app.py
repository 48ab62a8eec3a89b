from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field
from typing import Optional

from .config import Settings, load_settings
from .engines import ImpactEngine, build_engine
from .errors import ConfigurationError, ExternalServiceError, InvalidInputError
from .history import HistoryStore
from .impact_model import AsteroidInput, AsteroidType

# Type catalog for pickers
TYPE_CATALOG = [
    {"value": AsteroidType.STONY.value, "label": "Stony (S-Type)", "desc": "Common, silicate rock"},
    {"value": AsteroidType.METALLIC.value, "label": "Metallic (M-Type)", "desc": "Dense, iron-nickel"},
    {"value": AsteroidType.ICY.value, "label": "Icy (Comet)", "desc": "Low density, volatile"},
    {"value": AsteroidType.CARBONACEOUS.value, "label": "Carbonaceous (C-Type)", "desc": "Dark, primitive"},
]


class AsteroidIn(BaseModel):
    name: str = Field("Neo-X1", description="Display name")
    diameter: float = Field(50.0, gt=0, description="Diameter in meters")
    velocity: float = Field(17.0, gt=0, description="Velocity in km/s")
    distance: float = Field(384_400.0, ge=0, description="Current distance from Earth in km")
    type: str = Field(AsteroidType.STONY.value, description="Asteroid type; unknown values fall back to defaults")

    def to_domain(self) -> AsteroidInput:
        return AsteroidInput(
            name=self.name,
            diameter_m=self.diameter,
            velocity_kmps=self.velocity,
            distance_km=self.distance,
            type=AsteroidType.parse(self.type) or self.type,
        )


def create_app(settings: Optional[Settings] = None, engine: Optional[ImpactEngine] = None) -> FastAPI:
    settings = settings or load_settings()
    engine = engine or build_engine(settings)
    history = HistoryStore(limit=settings.history_limit)

    app = FastAPI(title="Asteroid Impact Analysis", version="1.0.0")
    app.state.settings = settings
    app.state.engine = engine
    app.state.history = history

    # -------------------------------
    # Health + catalog endpoints
    # -------------------------------
    @app.get("/health")
    def health():
        return {"status": "ok", "engine": engine.name}

    @app.get("/asteroid-types")
    def asteroid_types():
        return TYPE_CATALOG

    @app.get("/defaults")
    def defaults():
        return AsteroidIn().model_dump()

    # -------------------------------
    # Analysis endpoint
    # -------------------------------
    @app.post("/analyze")
    def analyze(req: AsteroidIn):
        inp = req.to_domain()
        print(f"[analyze] engine={engine.name} name={inp.name!r} d={inp.diameter_m}m "
              f"v={inp.velocity_kmps}km/s dist={inp.distance_km}km type={inp.type_label!r}")
        try:
            result = engine.analyze(inp)
        except InvalidInputError as e:
            raise HTTPException(status_code=422, detail=str(e))
        except ExternalServiceError as e:
            print(f"[analyze.error] {e}")
            raise HTTPException(status_code=e.status_code, detail=str(e))
        except ConfigurationError as e:
            raise HTTPException(status_code=500, detail=str(e))

        item = history.add(inp, result)
        print(f"[analyze.done] id={item.id} hit={result.is_hit} p={result.impact_probability}% "
              f"E={result.kinetic_energy_megatons:.4g}MT history={len(history)}")
        return {"id": item.id, **result.to_dict()}

    # -------------------------------
    # History (consumer-side log)
    # -------------------------------
    @app.get("/history")
    def list_history():
        return [item.to_dict() for item in history.list()]

    @app.get("/history/{item_id}")
    def get_history_item(item_id: str):
        item = history.get(item_id)
        if item is None:
            raise HTTPException(status_code=404, detail=f"No history record {item_id}.")
        return item.to_dict()

    @app.delete("/history")
    def clear_history():
        n = history.clear()
        print(f"[history] cleared {n} records")
        return {"cleared": n}

    return app


app = create_app()
