from datetime import date, datetime, time

__all__ = ["DATE_FORMAT", "TIME_FORMAT", "now_local", "parse_date", "format_date", "parse_time", "format_time", "combine_local"]

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


def now_local() -> datetime:
    """获取当前本地时间(不带时区)，提醒按日历日期与钟表时间计算"""
    return datetime.now()

def parse_date(date_str: str) -> date:
    # date_str: "YYYY-MM-DD"
    return datetime.strptime(date_str, DATE_FORMAT).date()

def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)

def parse_time(time_str: str) -> time:
    # time_str: "HH:MM"
    return datetime.strptime(time_str, TIME_FORMAT).time()

def format_time(value: time) -> str:
    return value.strftime(TIME_FORMAT)

def combine_local(date_str: str, time_str: str | None) -> datetime:
    """组合日期与可选时间；没有时间时视为当天 00:00"""
    day = parse_date(date_str)
    if time_str:
        return datetime.combine(day, parse_time(time_str))
    return datetime.combine(day, time.min)
