from .routes_behavior import router as behavior_router
from .routes_events import router as events_router
from .routes_feedback import router as feedback_router
from .routes_preferences import router as preferences_router
from .routes_recommendations import router as recommendations_router

all_routers = [
    behavior_router,
    feedback_router,
    preferences_router,
    recommendations_router,
    events_router,
]
