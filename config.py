import os

# 기본 디렉토리 설정
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# 경로 설정
STATIC_DIR = os.path.join(BASE_DIR, "static")
LOG_FILE = os.path.join(BASE_DIR, "launch.log")

# 서버 설정
DEFAULT_HOST = os.getenv("HOST", "127.0.0.1")
DEFAULT_PORT = int(os.getenv("PORT", "8000"))

# 백엔드 게이트웨이 설정
BACKEND_URL = os.getenv("BACKEND_URL", "http://localhost:8085")
BACKEND_TIMEOUT_SECONDS = float(os.getenv("BACKEND_TIMEOUT", "15.0"))

# 타이머 설정
TICK_INTERVAL_SECONDS = 1.0
TIMER_WARNING_SECONDS = 300     # 5분 미만이면 경고 표시

# 결과 등급 기준 (점수 %)
EXCELLENT_THRESHOLD = 80.0
GOOD_THRESHOLD = 60.0

# 세션 설정
SESSION_TTL = 3600              # 1시간
SESSION_CLEANUP_INTERVAL = 300  # 5분마다 만료 세션 정리
