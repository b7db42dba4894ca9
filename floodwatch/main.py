# floodwatch/main.py
import os, asyncio, signal
import uvicorn
from floodwatch.settings import Settings
from floodwatch.observability.health import create_app
from floodwatch.observability.logging_setup import setup_logging, get_logger
from floodwatch.adapters.storage.sqlite_kv import SQLiteKVStore
from floodwatch.adapters.geocoding.nominatim import NominatimClient
from floodwatch.core.store import IncidentStore
from floodwatch.features.search import LocationSearch

def _b(name, default=False): return os.getenv(name, str(default)).lower() in ("1","true","yes","on")

def build_settings() -> Settings:
    s = Settings()

    # 저장소
    s.storage.path = os.getenv("STORAGE_PATH", s.storage.path)
    s.storage.key = os.getenv("STORAGE_KEY", s.storage.key)

    # 지오코더
    s.geocoder.base_url = os.getenv("GEOCODER_URL", s.geocoder.base_url)
    s.geocoder.timeout_sec = float(os.getenv("GEOCODER_TIMEOUT_SEC", s.geocoder.timeout_sec))
    s.geocoder.user_agent = os.getenv("GEOCODER_USER_AGENT", s.geocoder.user_agent)

    # 지구
    s.district.name = os.getenv("DISTRICT_NAME", s.district.name)

    # 관측성
    s.observability.http_port = int(os.getenv("HTTP_PORT", s.observability.http_port))
    s.observability.log_level = os.getenv("LOG_LEVEL", s.observability.log_level)
    s.observability.json_logs = _b("JSON_LOGS", s.observability.json_logs)
    s.observability.metrics_enabled = _b("METRICS_ENABLED", s.observability.metrics_enabled)

    return s

async def main():
    s = build_settings()
    setup_logging(s.observability.log_level, json_logs=s.observability.json_logs)
    log = get_logger()
    log.info("설정 로드 완료")

    kv = SQLiteKVStore(s.storage.path); await kv.init()
    store = IncidentStore(kv, key=s.storage.key)
    await store.load()

    geocoder = NominatimClient(
        s.geocoder.base_url,
        district_name=s.district.name,
        country=s.district.country,
        country_code=s.geocoder.country_code,
        limit=s.geocoder.limit,
        timeout=s.geocoder.timeout_sec,
        user_agent=s.geocoder.user_agent,
        accept_language=s.geocoder.accept_language,
    )

    async with geocoder:
        search = LocationSearch(geocoder, s.district)
        app = create_app(s, store=store, search=search)
        server = uvicorn.Server(
            uvicorn.Config(app, host="0.0.0.0", port=s.observability.http_port, log_level="info")
        )
        http_task = asyncio.create_task(server.serve())
        log.info(f"HTTP 서버 시작됨 port:{s.observability.http_port}")

        stop = asyncio.Future()
        try:
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGTERM, signal.SIGINT):
                try: loop.add_signal_handler(sig, lambda: (not stop.done()) and stop.set_result(True))
                except NotImplementedError: pass
        except RuntimeError: pass

        await asyncio.wait([stop, http_task], return_when=asyncio.FIRST_COMPLETED)
        server.should_exit = True
        await http_task
        log.info("종료")

def run():
    asyncio.run(main())

if __name__ == "__main__":
    run()
