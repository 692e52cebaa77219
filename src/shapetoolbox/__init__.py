"""Parametric 3D shape stimuli with sine, noise, bump and custom perturbations."""

from ._batch import BatchJob as BatchJob
from ._batch import BatchResult as BatchResult
from ._batch import run_batch as run_batch
from ._components import BumpComponent as BumpComponent
from ._components import NoiseComponent as NoiseComponent
from ._components import SineComponent as SineComponent
from ._components import gaussian_bumps as gaussian_bumps
from ._config import PerturbParams as PerturbParams
from ._config import ShapeParams as ShapeParams
from ._config import ShapeType as ShapeType
from ._errors import AmplitudeError as AmplitudeError
from ._errors import PlacementError as PlacementError
from ._errors import ShapeConfigError as ShapeConfigError
from ._errors import ShapeToolboxError as ShapeToolboxError
from ._make import make_bumpy as make_bumpy
from ._make import make_custom as make_custom
from ._make import make_noise as make_noise
from ._make import make_shape as make_shape
from ._make import make_sine as make_sine
from ._model import Model as Model
from ._model import Perturbation as Perturbation
from ._obj import ObjData as ObjData
from ._obj import read_obj as read_obj
from ._obj import write_obj as write_obj

__version__ = "0.0.0"
