from fluxlora.api.events import ApiRequest, ApiResponse, Handler
from fluxlora.context import AppContext
from fluxlora.database.records import utc_now_iso


def build_health_handler(ctx: AppContext) -> Handler:
    def health(request: ApiRequest) -> ApiResponse:
        return ctx.envelope.success({
            "status": "healthy",
            "version": ctx.settings.API_VERSION,
            "timestamp": utc_now_iso(),
        })

    return ctx.middleware(methods=["GET"])(health)
