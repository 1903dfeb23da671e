# players/categories.py
"""
Birth-year categories. Players not listed as 'Masculino' use the female table.
"""
from shared.constants import UNKNOWN_CATEGORY
from shared.helpers import parse_date

MALE_CATEGORIES = (
    ('U6', (2020, 2021)),
    ('U8', (2018, 2019)),
    ('U10', (2016, 2017)),
    ('U12', (2014, 2015)),
    ('U14', (2012, 2013)),
    ('U16', (2010, 2011)),
)

FEMALE_CATEGORIES = (
    ('U10', (2016, 2017)),
    ('U12', (2014, 2015)),
    ('U14', (2012, 2013)),
    ('U16', (2010, 2011)),
)

# Born this year or earlier
FEMALE_U18_LAST_YEAR = 2009


def get_category(birth_date, gender):
    """Category for a birth date (date or YYYY-MM-DD) and gender."""
    year = parse_date(birth_date, 'birthDate').year

    if gender == 'Masculino':
        table = MALE_CATEGORIES
    else:
        if year <= FEMALE_U18_LAST_YEAR:
            return 'U18'
        table = FEMALE_CATEGORIES

    for category, years in table:
        if year in years:
            return category
    return UNKNOWN_CATEGORY
