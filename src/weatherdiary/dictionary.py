"""Static English to Chinese lookups used before any translation service is called."""

from __future__ import annotations

from typing import Dict, Optional

WEATHER_TRANSLATIONS: Dict[str, str] = {
    "Sunny": "晴天",
    "Clear": "晴朗",
    "Partly cloudy": "多云",
    "Cloudy": "阴天",
    "Overcast": "阴霾",
    "Light rain": "小雨",
    "Moderate rain": "中雨",
    "Heavy rain": "大雨",
    "Light snow": "小雪",
    "Heavy snow": "大雪",
    "Thunderstorm": "雷雨",
    "Light rain shower": "阵雨",
    "Moderate rain shower": "中阵雨",
    "Heavy rain shower": "大阵雨",
    "Mist": "薄雾",
    "Fog": "雾",
    "Freezing rain": "冻雨",
    "Sleet": "雨夹雪",
    "Drizzle": "毛毛雨",
    "Light drizzle": "轻雾雨",
    "Heavy drizzle": "浓雾雨",
}

LOCATION_TRANSLATIONS: Dict[str, str] = {
    # China
    "Beijing": "北京", "Shanghai": "上海", "Guangzhou": "广州", "Shenzhen": "深圳",
    "Hangzhou": "杭州", "Nanjing": "南京", "Wuhan": "武汉", "Chengdu": "成都",
    "Chongqing": "重庆", "Tianjin": "天津", "Xian": "西安", "Suzhou": "苏州",
    "Qingdao": "青岛", "Dalian": "大连", "Ningbo": "宁波", "Xiamen": "厦门",
    "Kunming": "昆明", "Changsha": "长沙", "Taiyuan": "太原", "Hefei": "合肥",
    "Nanchang": "南昌", "Guiyang": "贵阳", "Fuzhou": "福州", "Harbin": "哈尔滨",
    "Jinan": "济南", "Changchun": "长春", "Shijiazhuang": "石家庄", "Shenyang": "沈阳",
    "Zhengzhou": "郑州", "Lanzhou": "兰州", "Urumqi": "乌鲁木齐", "Lhasa": "拉萨",
    "Hohhot": "呼和浩特", "Yinchuan": "银川", "Xining": "西宁", "Haikou": "海口",
    "Nanning": "南宁",
    # North America
    "New York": "纽约", "Los Angeles": "洛杉矶", "Chicago": "芝加哥", "Houston": "休斯顿",
    "Philadelphia": "费城", "San Diego": "圣地亚哥", "San Francisco": "旧金山",
    "Seattle": "西雅图", "Denver": "丹佛", "Boston": "波士顿", "Las Vegas": "拉斯维加斯",
    "Atlanta": "亚特兰大", "Miami": "迈阿密", "Honolulu": "火奴鲁鲁",
    "Toronto": "多伦多", "Montreal": "蒙特利尔", "Vancouver": "温哥华", "Ottawa": "渥太华",
    # Europe
    "London": "伦敦", "Manchester": "曼彻斯特", "Edinburgh": "爱丁堡", "Oxford": "牛津",
    "Paris": "巴黎", "Berlin": "柏林", "Madrid": "马德里", "Rome": "罗马",
    "Amsterdam": "阿姆斯特丹", "Vienna": "维也纳", "Brussels": "布鲁塞尔", "Prague": "布拉格",
    "Stockholm": "斯德哥尔摩", "Copenhagen": "哥本哈根", "Oslo": "奥斯陆", "Helsinki": "赫尔辛基",
    "Zurich": "苏黎世", "Geneva": "日内瓦", "Lisbon": "里斯本", "Athens": "雅典", "Dublin": "都柏林",
    # Asia
    "Tokyo": "东京", "Osaka": "大阪", "Yokohama": "横滨", "Nagoya": "名古屋",
    "Sapporo": "札幌", "Fukuoka": "福冈", "Kobe": "神户", "Kyoto": "京都",
    "Seoul": "首尔", "Busan": "釜山", "Incheon": "仁川", "Jeju": "济州",
    "Bangkok": "曼谷", "Kuala Lumpur": "吉隆坡", "Jakarta": "雅加达", "Manila": "马尼拉",
    "Ho Chi Minh City": "胡志明市", "Hanoi": "河内", "Mumbai": "孟买", "Delhi": "德里",
    "Singapore": "新加坡",
    # Oceania, South America, Africa
    "Sydney": "悉尼", "Melbourne": "墨尔本", "Brisbane": "布里斯班", "Perth": "珀斯",
    "Auckland": "奥克兰", "Wellington": "惠灵顿",
    "São Paulo": "圣保罗", "Rio de Janeiro": "里约热内卢", "Buenos Aires": "布宜诺斯艾利斯",
    "Santiago": "圣地亚哥", "Lima": "利马",
    "Cairo": "开罗", "Lagos": "拉各斯", "Johannesburg": "约翰内斯堡", "Nairobi": "内罗毕",
    "Cape Town": "开普敦",
    # Countries
    "China": "中国", "United States": "美国", "United States of America": "美国", "USA": "美国",
    "United Kingdom": "英国", "UK": "英国", "Canada": "加拿大", "Japan": "日本",
    "South Korea": "韩国", "Korea": "韩国", "Malaysia": "马来西亚", "Thailand": "泰国",
    "Vietnam": "越南", "Philippines": "菲律宾", "Indonesia": "印度尼西亚", "India": "印度",
    "Australia": "澳大利亚", "New Zealand": "新西兰", "France": "法国", "Germany": "德国",
    "Italy": "意大利", "Spain": "西班牙", "Netherlands": "荷兰", "Belgium": "比利时",
    "Switzerland": "瑞士", "Austria": "奥地利", "Sweden": "瑞典", "Norway": "挪威",
    "Denmark": "丹麦", "Finland": "芬兰", "Poland": "波兰", "Russia": "俄罗斯",
    "Brazil": "巴西", "Argentina": "阿根廷", "Chile": "智利", "Mexico": "墨西哥",
    "Egypt": "埃及", "South Africa": "南非", "Turkey": "土耳其",
}


def lookup(text: str, domain: str = "location") -> Optional[str]:
    if domain == "weather":
        return WEATHER_TRANSLATIONS.get(text)
    return LOCATION_TRANSLATIONS.get(text) or WEATHER_TRANSLATIONS.get(text)


__all__ = ["LOCATION_TRANSLATIONS", "WEATHER_TRANSLATIONS", "lookup"]
