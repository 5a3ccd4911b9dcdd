"""
cli - cloud-sizing 명령줄 인터페이스

- app: Click 엔트리포인트
- console: Rich 콘솔/로깅 설정
- render: 테이블/JSON 출력
"""
