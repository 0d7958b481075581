"""ReWear 서비스 공용 패키지 (로깅, Mongo, 이벤트 버스)."""
