import os.path as osp

here = osp.dirname(osp.abspath(__file__))

DEFAULT_GP_MOTION_FIT_CONFIG = osp.join(here, "gp_motion_fit.yaml")
