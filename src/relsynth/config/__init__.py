from relsynth.config.settings import GeneratorConfig, get_config, set_config
