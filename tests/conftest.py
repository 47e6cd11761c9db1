import pytest
from tidy_vector import read_csv


ESTIMATES_CSV = """country,year,estimate,hi,lo
AGO,2009,NA,NA,NA
AGO,2010,0.03,0.04,0.02
AGO,2011,0.05,0.07,0.04
BEN,2009,0.52,0.66,0.41
BEN,2010,0.61,0.73,0.51
CMR,2010,0.72,0.81,0.63
"""


@pytest.fixture
def estimates():
    """Six rows of country/year estimates; AGO 2009 is entirely missing."""
    return read_csv(ESTIMATES_CSV)
