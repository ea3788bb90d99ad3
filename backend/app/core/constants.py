from enum import Enum

# 휴대폰 번호: 010/011/016/017/018/019 + 7~8자리
PHONE_REGEX = r"^(01[016789]\d{3,4}\d{4})$"
# 영문과 숫자를 섞은 8~20자
PASSWORD_REGEX = r"^(?=.*[A-Za-z])(?=.*\d)[A-Za-z\d]{8,20}$"

DEFAULT_PROFILE_IMAGE_ID = 1

MAX_TITLE_LENGTH = 50
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

CERTIFICATION_CODE_LENGTH = 6
NEW_PASSWORD_LENGTH = 12

BASE_SKILLS = [
    "Java", "Spring", "Python", "Django", "FastAPI", "JavaScript", "TypeScript",
    "React", "Vue", "Node.js", "Kotlin", "Swift", "Flutter", "MySQL", "AWS", "Docker",
]


class SortStatus(str, Enum):
    DEFAULT = "DEFAULT"
    LIKES = "LIKES"


class LikeStatus(str, Enum):
    LIKED = "LIKED"
    UNLIKED = "UNLIKED"


class CategoryNames(str, Enum):
    # 시드 순서대로 id 1(CM_TEAM), 2(CM_PERSONAL), 3(CM_LOUNGE) ...
    CM_TEAM = "CM_TEAM"
    CM_PERSONAL = "CM_PERSONAL"
    CM_LOUNGE = "CM_LOUNGE"
    PROJECT = "PROJECT"
    STUDY = "STUDY"
