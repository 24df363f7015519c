# 유틸리티 모듈 (설정, 데이터베이스, 에러 처리, 헬퍼)
