from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
import os
from dotenv import load_dotenv
from pydantic import BaseModel, Field

import ai_orchestrator
import data_loader
from schemas import ScoreRequest
from score_calculator import score_zones

# Determine the environment - check for any production indicators
env = os.getenv("ENVIRONMENT", "development")
render_vars = os.getenv("RENDER") or os.getenv("RENDER_SERVICE_NAME") or os.getenv("RENDER_EXTERNAL_HOSTNAME")

print(f"Environment detected: {env}")

is_production = render_vars or env == "production"

if is_production:
    # For production, variables are loaded from the hosting environment
    print("Running in PRODUCTION mode")
    origins = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "").split(",") if origin.strip()]
else:
    # For local development, load variables from .env.development
    print("Running in DEVELOPMENT mode")
    load_dotenv(dotenv_path=".env.development")
    origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

print(f"CORS Origins configured: {origins}")

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def read_root():
    return {"message": "Resilience scoring backend is running"}


def get_tract_tables() -> Dict[str, List[Dict[str, Any]]]:
    """Dependency returning the joined tract tables; maps load failures to 503."""
    try:
        return data_loader.load_tract_tables()
    except (FileNotFoundError, ValueError) as e:
        print(f"Tract data unavailable: {e}")
        raise HTTPException(status_code=503, detail="Tract data is not available right now")


@app.post("/score")
async def score(request: ScoreRequest, tables: Dict[str, List[Dict[str, Any]]] = Depends(get_tract_tables)):
    print(f"Scoring request: {request.model_dump(by_alias=True, exclude_none=True)}")
    return score_zones(tables, request)


class AskAIRequest(BaseModel):
    """Typed request payload for /ask_ai."""

    query: str = Field(..., description="User's natural-language query")
    current_filters: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Current filter state captured on the frontend",
    )


@app.post("/ask_ai")
async def ask_ai(query_data: AskAIRequest):
    user_query = query_data.query.strip()
    if not user_query:
        raise HTTPException(status_code=400, detail="Query cannot be empty")

    print(f"Received query: {user_query}")
    try:
        ai_response = await ai_orchestrator.get_ai_response(
            user_query,
            current_filters=query_data.current_filters,
        )
        print(f"AI response: {ai_response}")

        token_info = ai_response.get("token_usage", {})
        print(f"Token usage - Prompt: {token_info.get('prompt_tokens', 0)}, "
              f"Completion: {token_info.get('completion_tokens', 0)}, "
              f"Total: {token_info.get('total_tokens', 0)}")

        return ai_response
    except Exception as e:
        print(f"Error during AI processing: {e}")
        import traceback
        traceback.print_exc()
        raise HTTPException(status_code=500, detail=f"Error processing your request with the AI: {str(e)}")


@app.options("/ask_ai")
async def ask_ai_options(request: Request) -> Response:
    """Handle CORS preflight requests."""
    print("Received CORS preflight for /ask_ai")
    return Response(status_code=200)
