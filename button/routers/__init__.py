"""Router package: collects all API routers and registers them on the FastAPI app."""

from fastapi import FastAPI

from button.routers import admin, agent, game, paid


def register_all_routers(app: FastAPI):
    app.include_router(admin.router)
    app.include_router(game.router)
    app.include_router(paid.router)
    app.include_router(agent.router)
