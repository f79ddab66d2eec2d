import base64
import logging
import os
import shutil
import tempfile
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from formula_guru.brand_registry import BrandRegistry, get_default_registry
from formula_guru.formula_generator import FormulaGenerator
from formula_guru.llm_client import VisionLlmClient
from formula_guru.settings import PORT, UPLOAD_DIR, get_openai_api_key

logger = logging.getLogger("formula_guru")

app = FastAPI(title="Formula Guru")

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # mobile app + local dev
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=4)
def _vision_client(api_key: str) -> VisionLlmClient:
    return VisionLlmClient(api_key=api_key)


def get_registry() -> BrandRegistry:
    return get_default_registry()


def get_generator(registry: BrandRegistry = Depends(get_registry)) -> Optional[FormulaGenerator]:
    api_key = get_openai_api_key()
    if not api_key:
        return None
    return FormulaGenerator(registry, _vision_client(api_key))


def to_data_url(data: bytes, mime: Optional[str]) -> str:
    b64 = base64.b64encode(data).decode("ascii")
    return f"data:{mime or 'image/jpeg'};base64,{b64}"


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/brands")
def brands(registry: BrandRegistry = Depends(get_registry)):
    return registry.catalog()


@app.post("/analyze")
def analyze(
    photo: Optional[UploadFile] = File(None),
    category: str = Form("demi"),
    brand: str = Form(""),
    generator: Optional[FormulaGenerator] = Depends(get_generator),
):
    if generator is None:
        return JSONResponse(status_code=401, content={"error": "Missing OPENAI_API_KEY"})
    if photo is None:
        return JSONResponse(status_code=400, content={"error": "No photo uploaded (field 'photo')."})

    tmp_path = None
    try:
        category = generator.registry.normalize_category(category)
        brand = generator.registry.normalize_brand_name(category, brand)

        os.makedirs(UPLOAD_DIR, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=UPLOAD_DIR, delete=False) as tmp:
            tmp_path = tmp.name
            shutil.copyfileobj(photo.file, tmp)
        with open(tmp_path, "rb") as f:
            data_url = to_data_url(f.read(), photo.content_type)

        result = generator.generate(category, brand, data_url)
        return JSONResponse(content=result.to_payload())
    except Exception as e:
        logger.exception(f"[ANALYZE] upstream failure: {e}")
        return JSONResponse(status_code=502, content={"error": "Upstream error", "detail": str(e)})
    finally:
        if tmp_path:
            try:
                os.remove(tmp_path)
            except OSError as e:
                logger.warning(f"[ANALYZE] could not delete upload {tmp_path}: {e}")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
