import logging

from fastapi import Depends, FastAPI

from .auth import get_current_user, get_current_user_optional
from .config import get_settings
from .models import principal_user
from .routers import sso
from .strategy import Strategy


def verify(principal):
    """
    Demo verify: the CAS user id is the application user.
    """
    user = principal_user(principal)
    return user, None


def create_app(strategy: Strategy = None) -> FastAPI:
    if strategy is None:
        strategy = Strategy(verify, options=get_settings().to_options())

    app = FastAPI(title="CAS Single Sign-On Client", version="1.0")
    app.state.strategy = strategy
    app.include_router(sso.build_router(strategy))

    @app.get("/")
    async def root(user=Depends(get_current_user_optional)):
        return {"user": user}

    @app.get("/me")
    async def me(user: str = Depends(get_current_user)):
        return {"user": user}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run("casauth.main:app", host="0.0.0.0", port=8000)
