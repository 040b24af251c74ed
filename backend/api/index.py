import sys
import os
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

# Add the parent directory to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

try:
    from config import Settings
    from main import build_conversation_service, create_app
    from mangum import Mangum

    # Lifespan events do not run under Mangum, so the services are built eagerly
    settings = Settings.load()
    fastapi_app = create_app(build_conversation_service(settings), settings)

    # Export for Vercel
    app = Mangum(fastapi_app, lifespan="off")

except Exception as e:
    init_error = str(e)
    print(f"Error during initialization: {init_error}")
    from fastapi import FastAPI
    from fastapi.responses import JSONResponse
    from mangum import Mangum

    error_app = FastAPI()

    @error_app.get("/{path:path}")
    async def catch_all(path: str):
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": f"Initialization failed: {init_error}"},
        )

    app = Mangum(error_app, lifespan="off")
