"""
main.py — Mantra IAS CBT 응시 서버 진입점
"""

import argparse
import logging
import socket
import sys
import threading
import time
import traceback
import webbrowser

from config import DEFAULT_HOST, DEFAULT_PORT, LOG_FILE

# ── 로깅 설정 ────────────────────────────────────────────────────────────────
try:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[
            logging.FileHandler(LOG_FILE, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )
except PermissionError:
    # 로그 파일 점유 시 콘솔 출력만 사용
    logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)

# ── 서버 및 네트워크 유틸 ───────────────────────────────────────────────────

def _port_is_free(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind((host, port))
        except OSError:
            return False
        return True


def _find_free_port(host: str) -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind((host, 0))
        return s.getsockname()[1]


def _wait_for_server(host: str, port: int, timeout: float = 15.0) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        try:
            with socket.create_connection((host, port), timeout=0.5):
                return True
        except OSError:
            time.sleep(0.1)
    return False


def _start_server(host: str, port: int) -> None:
    try:
        import uvicorn
        from api.app import create_app
        logger.info(f"Uvicorn 서버 시작 - {host}:{port}")
        uvicorn.run(create_app(), host=host, port=port, log_level="warning")
    except Exception:
        logger.error(f"서버 오류 발생:\n{traceback.format_exc()}")


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mantra IAS CBT test-attempt server")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--no-browser", action="store_true", help="브라우저를 자동으로 열지 않음")
    return parser.parse_args(argv)

# ── 메인 실행 ────────────────────────────────────────────────────────────────

def main(argv=None) -> int:
    args = _parse_args(argv)
    logger.info("=== Mantra IAS CBT Started ===")

    port = args.port if _port_is_free(args.host, args.port) else _find_free_port(args.host)
    server_thread = threading.Thread(target=_start_server, args=(args.host, port), daemon=True)
    server_thread.start()

    if not _wait_for_server(args.host, port):
        logger.error("서버 시작 제한 시간을 초과했습니다. 기존 프로세스를 종료해 보세요.")
        return 1

    url = f"http://{args.host}:{port}"
    logger.info(f"서버 준비 완료: {url}")
    if not args.no_browser:
        webbrowser.open(url)

    # 메인 스레드 유지
    try:
        while server_thread.is_alive():
            time.sleep(10)
    except KeyboardInterrupt:
        logger.info("사용자에 의해 종료되었습니다.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
