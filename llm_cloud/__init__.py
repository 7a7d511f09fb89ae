"""
llm_cloud package: model backend client and the tool system exposed to the model.
"""
