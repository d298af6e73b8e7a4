import os

# 기본 디렉토리 설정
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# 경로 설정
LOG_FILE = os.getenv("LOG_FILE", os.path.join(BASE_DIR, "launch.log"))
SEED_FILE = os.getenv("SEED_FILE", os.path.join(BASE_DIR, "data", "seed.json"))

# 서버 설정
DEFAULT_HOST = os.getenv("HOST", "127.0.0.1")
DEFAULT_PORT = int(os.getenv("PORT", "8000"))

# 시험 메타데이터 조회 설정
LOOKUP_TIMEOUT = float(os.getenv("LOOKUP_TIMEOUT", "5.0"))   # 조회 1건당 제한 시간 (초)

# 점수 환산 기본값
DEFAULT_TOTAL_MARKS = 30        # 시험 정보가 전혀 없을 때의 만점
DEFAULT_TOTAL_QUESTIONS = 6     # 문항 수를 알 수 없을 때의 문항 수
EXAM_TYPE_MAX_MARKS = {
    "first-test": 10,
    "second-test": 30,
    "main-exam": 60,
}

# 결과 표 배지 기준 (%)
BADGE_GREEN_MIN = 70
BADGE_YELLOW_MIN = 50

# 대시보드 최근 결과 표시 건수
RECENT_ACTIVITY_LIMIT = 5
