from .loop import converge
from .loop import ConvergeResult

from .config import ConvergeConfig
from .config import DampenConfig
from .config import NewtonConfig
from .config import make_config
from .config import validate

from .distance import infnorm_pctdev
from .distance import max_abs_diff
from .distance import sum_abs_diff

from .dampen import DampenState
from .dampen import dampen_step
from .dampen import dynamic_dampen
from .dampen import isconvex
from .dampen import isdiverging
from .dampen import isovershooting

from .errors import InvalidInput
from .errors import NonConvergenceWarning

from .solver import newton
from .solver import NewtonSolution

from .updates import DampedUpdate
from .updates import damped_update
from .updates import dynamic_damped_update
from .updates import update

from .utils import chunk
from .utils import diagonal
from .utils import issquare
from .utils import normalise
from .utils import off_diagonal
from .utils import pretty
from .utils import quietly
from .utils import zero_safe
