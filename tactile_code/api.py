"""
Tactile Code HTTP API

Stateless JSON endpoints over the core components, for hosts that run the
core out of process. Cue endpoints return descriptors only; playback stays
on the host.
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel

from . import __version__
from .audio import CueMapper, NullSink
from .braille import BrailleTransliterator, virtual_display, wrap_braille
from .navigator import build_index, search_elements
from .scanner import check_brackets, scan
from .settings import CoreSettings
from .taxonomy import TONE_TABLE, ElementKind

app = FastAPI(
    title="tactile-code",
    description="Structural scanning, audio cues and braille for accessible code editing",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Lookups only; the worker never starts because nothing is triggered here
cues = CueMapper(sink=NullSink())


# --- Models ---

class SourceRequest(BaseModel):
    text: str = ""
    language: str = ""
    settings: Optional[Dict[str, Any]] = None


class IndexRequest(SourceRequest):
    query: Optional[str] = None


class SearchRequest(SourceRequest):
    query: str = ""


class BrailleRequest(SourceRequest):
    custom_contractions: Optional[Dict[str, str]] = None
    display: bool = False


# --- Endpoints ---

@app.get("/health")
async def health():
    return {"status": "ok", "version": __version__, "braille": "⠞⠁⠉⠞⠊⠇⠑"}


@app.post("/api/scan")
async def scan_source(data: SourceRequest):
    """Elements in scan order"""
    elements = scan(data.text)
    return {"count": len(elements), "elements": [e.to_dict() for e in elements]}


@app.post("/api/index")
async def index_source(data: IndexRequest):
    """Visible sequence after filter, sort and grouping"""
    settings = CoreSettings.from_mapping(data.settings)
    visible = build_index(scan(data.text), settings, data.query)
    return {"count": len(visible), "elements": [e.to_dict() for e in visible]}


@app.post("/api/search")
async def search_source(data: SearchRequest):
    results = search_elements(scan(data.text), data.query)
    logger.debug(f"Search {data.query!r}: {len(results)} results")
    return {"query": data.query, "results": [r.to_dict() for r in results]}


@app.post("/api/braille")
async def braille_source(data: BrailleRequest):
    settings = CoreSettings.from_mapping(data.settings)
    braille, stats = BrailleTransliterator(data.custom_contractions).transliterate(data.text, settings)
    response = {
        "braille": braille,
        "wrapped": wrap_braille(braille, settings.cells_per_line),
        "stats": stats.to_dict(),
    }
    if data.display:
        response["display"] = [g.to_dict() for g in virtual_display(braille, settings.cells_per_line)]
    return response


@app.post("/api/diagnostics")
async def diagnostics(data: SourceRequest):
    found = check_brackets(data.text, data.language)
    return {"count": len(found), "diagnostics": [d.to_dict() for d in found]}


@app.get("/api/cues")
async def list_cues():
    """Every kind and named cue with its tone"""
    names = [kind.value for kind in ElementKind]
    names += [name for name in TONE_TABLE if name not in names]
    return {name: cues.cue_for(name).to_dict() for name in names}


@app.get("/api/cues/{kind}")
async def get_cue(kind: str):
    """Tone for one kind; unknown kinds get the default tone"""
    return {"kind": kind, "descriptor": cues.cue_for(kind).to_dict()}
